"""Feedback loop: ratings, watched status and embedding ingestion."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.constants import EMBEDDING_RATING_FLOOR, RATING_MAX, RATING_MIN
from src.db.crud import delete_embedding, get_recommendation, update_feedback, upsert_embedding
from src.errors import NotFound, ValidationError
from src.models.recommendation import RatedItem
from src.models.schemas import EmbeddingIngestResponse, FeedbackResponse
from src.services.feedback.worker import EmbeddingJob, EmbeddingWorker
from src.services.llm import LlmClient
from src.utils.logging import get_logger

logger = get_logger(__name__)

DISLIKE_OVERRIDE_RATING = 1


class FeedbackService:
    """Persists feedback and hands qualifying ratings to the embedding worker."""

    def __init__(self, db: AsyncSession, worker: EmbeddingWorker) -> None:
        self.db = db
        self.worker = worker

    async def _get_item(self, user_id: str, recommendation_id: uuid.UUID) -> RatedItem:
        item = await get_recommendation(self.db, recommendation_id, user_id)
        if not item:
            raise NotFound("Recommendation not found")
        return item

    async def rate(self, user_id: str, recommendation_id: uuid.UUID, rating: int) -> FeedbackResponse:
        """Persist a 1-5 rating; ratings >= 4 queue embedding generation.

        The rating is committed before the job is queued, and queueing never
        fails the call.
        """
        if not RATING_MIN <= rating <= RATING_MAX:
            raise ValidationError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")

        item = await self._get_item(user_id, recommendation_id)
        item = await update_feedback(self.db, item, user_rating=rating)
        logger.info(f"User {user_id} rated '{item.title}' {rating}/5")

        queued = False
        if rating >= EMBEDDING_RATING_FLOOR:
            queued = self.worker.submit(
                EmbeddingJob(
                    user_id=user_id,
                    title=item.title,
                    description=item.description,
                    rating=rating,
                    recommendation_id=item.id,
                )
            )
        return FeedbackResponse(id=item.id, user_rating=item.user_rating, watched=item.watched, embedding_queued=queued)

    async def mark_watched(
        self,
        user_id: str,
        recommendation_id: uuid.UUID,
        watched: bool,
        liked: bool | None = None,
    ) -> FeedbackResponse:
        """Persist watched status; liked=False forces the rating to 1."""
        item = await self._get_item(user_id, recommendation_id)

        if liked is False:
            item = await update_feedback(self.db, item, watched=watched, user_rating=DISLIKE_OVERRIDE_RATING)
            # A disliked title must not seed future retrieval
            await delete_embedding(self.db, user_id, item.title)
            logger.info(f"User {user_id} disliked '{item.title}', rating forced to {DISLIKE_OVERRIDE_RATING}")
        else:
            item = await update_feedback(self.db, item, watched=watched)

        return FeedbackResponse(id=item.id, user_rating=item.user_rating, watched=item.watched)


async def ingest_embedding(
    db: AsyncSession,
    llm: LlmClient,
    user_id: str,
    *,
    title: str,
    description: str,
    rating: int,
) -> EmbeddingIngestResponse:
    """Generate and upsert the embedding for (user, title) right away.

    Ratings below the floor are acknowledged without storing anything.
    """
    if rating < EMBEDDING_RATING_FLOOR:
        return EmbeddingIngestResponse(
            success=True,
            message=f"Embeddings only generated for {EMBEDDING_RATING_FLOOR}-{RATING_MAX} star ratings",
        )

    job = EmbeddingJob(user_id=user_id, title=title.strip(), description=description.strip(), rating=rating)
    embedding = await llm.embed(job.text)
    await upsert_embedding(db, user_id, job.title, job.description, embedding, rating)
    logger.info(f"Stored embedding for '{job.title}' (user {user_id})")
    return EmbeddingIngestResponse(success=True, message="Embedding generated and stored")
