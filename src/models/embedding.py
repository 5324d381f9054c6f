"""Embedding model for titles a user loved."""

import uuid

from sqlalchemy import JSON, CheckConstraint, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class ItemEmbedding(Base, TimestampMixin):
    """Vector for a title rated 4 or 5 by a user.

    One row per (user_id, title); re-rating overwrites the row.
    """

    __tablename__ = "show_embeddings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list] = mapped_column(JSON, nullable=False)
    user_rating: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "title", name="uq_show_embedding_user_title"),
        CheckConstraint("user_rating >= 4 AND user_rating <= 5", name="ck_show_embedding_user_rating"),
    )

    def __repr__(self) -> str:
        return f"<ItemEmbedding(user_id={self.user_id}, title={self.title}, user_rating={self.user_rating})>"
