"""CRUD operations module."""

from src.db.crud.embeddings import (
    EmbeddingIndex,
    SimilarityMatch,
    delete_embedding,
    get_seed_embeddings,
    load_embedding_index,
    upsert_embedding,
)
from src.db.crud.recommendations import (
    create_recommendations,
    get_rating_history,
    get_recent_recommendations,
    get_recommendation,
    get_recommended_titles,
    get_watched_titles,
    update_feedback,
)
from src.db.crud.watched import add_watched_show, get_watched_shows, remove_watched_show

__all__ = [
    "EmbeddingIndex",
    "SimilarityMatch",
    "add_watched_show",
    "create_recommendations",
    "delete_embedding",
    "get_rating_history",
    "get_recent_recommendations",
    "get_recommendation",
    "get_recommended_titles",
    "get_seed_embeddings",
    "get_watched_shows",
    "get_watched_titles",
    "load_embedding_index",
    "remove_watched_show",
    "update_feedback",
    "upsert_embedding",
]
