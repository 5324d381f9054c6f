"""CRUD operations for the user's watched-shows list."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import StorageError
from src.models.watched import WatchedShow

logger = logging.getLogger(__name__)


async def get_watched_shows(db: AsyncSession, user_id: str) -> list[WatchedShow]:
    """The user's watched list, newest first."""
    result = await db.execute(
        select(WatchedShow).where(WatchedShow.user_id == user_id).order_by(WatchedShow.created_at.desc())
    )
    return list(result.scalars().all())


async def add_watched_show(db: AsyncSession, user_id: str, title: str) -> WatchedShow:
    """Add a title to the watched list; an existing entry is returned unchanged."""
    title = title.strip()
    if not title:
        raise ValueError("title must not be blank")

    result = await db.execute(
        select(WatchedShow).where(WatchedShow.user_id == user_id, WatchedShow.title == title)
    )
    existing = result.scalar_one_or_none()
    if existing:
        return existing

    show = WatchedShow(user_id=user_id, title=title)
    try:
        db.add(show)
        await db.commit()
        await db.refresh(show)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Saving watched show for user {user_id} failed: {e}")
        raise StorageError("Failed to save watched show") from e
    return show


async def remove_watched_show(db: AsyncSession, user_id: str, title: str) -> bool:
    """Remove a title from the watched list."""
    result = await db.execute(
        select(WatchedShow).where(WatchedShow.user_id == user_id, WatchedShow.title == title.strip())
    )
    show = result.scalar_one_or_none()
    if not show:
        return False

    try:
        await db.delete(show)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Removing watched show for user {user_id} failed: {e}")
        raise StorageError("Failed to remove watched show") from e
    return True
