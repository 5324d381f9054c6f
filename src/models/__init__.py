"""SQLAlchemy models."""

from src.models.base import Base
from src.models.embedding import ItemEmbedding
from src.models.recommendation import RatedItem
from src.models.watched import WatchedShow

__all__ = [
    "Base",
    "ItemEmbedding",
    "RatedItem",
    "WatchedShow",
]
