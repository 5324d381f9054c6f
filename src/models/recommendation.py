"""Recommendation model: every title shown to a user, with their feedback."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class RatedItem(Base, TimestampMixin):
    """A recommendation shown to a user.

    Rows are created when a batch is served to an authenticated user and
    mutated when the user rates or marks them watched. They are never
    deleted; the full set of titles doubles as the user's exclusion list.
    """

    __tablename__ = "recommendations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)  # "Movie" or "Series"
    genre: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    match_reason: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[str] = mapped_column(String(10), nullable=False)  # critic score, e.g. "8.5"

    # Feedback
    user_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    watched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        CheckConstraint("user_rating IS NULL OR (user_rating >= 1 AND user_rating <= 5)", name="ck_recommendation_user_rating"),
        Index("ix_recommendation_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RatedItem(id={self.id}, title={self.title}, user_rating={self.user_rating})>"
