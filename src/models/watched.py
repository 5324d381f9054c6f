"""Watched-shows list maintained by the user."""

import uuid

from sqlalchemy import String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class WatchedShow(Base, TimestampMixin):
    """A title the user told us they already watched."""

    __tablename__ = "watched_shows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "title", name="uq_watched_show_user_title"),)

    def __repr__(self) -> str:
        return f"<WatchedShow(user_id={self.user_id}, title={self.title})>"
