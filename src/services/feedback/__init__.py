"""Feedback loop services."""

from src.services.feedback.service import FeedbackService, ingest_embedding
from src.services.feedback.worker import EmbeddingJob, EmbeddingWorker, embedding_worker, get_embedding_worker

__all__ = [
    "EmbeddingJob",
    "EmbeddingWorker",
    "FeedbackService",
    "embedding_worker",
    "get_embedding_worker",
    "ingest_embedding",
]
