"""CRUD operations for recommendations shown to users and their feedback."""

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import StorageError
from src.models.recommendation import RatedItem
from src.models.schemas import RecommendationRead

logger = logging.getLogger(__name__)


async def create_recommendations(
    db: AsyncSession,
    user_id: str,
    records: Sequence[RecommendationRead],
) -> list[RatedItem]:
    """Persist a served batch for the user. All rows are written or none."""
    items = [
        RatedItem(
            user_id=user_id,
            title=rec.title,
            type=rec.type,
            genre=rec.genre,
            description=rec.description,
            match_reason=rec.match_reason,
            rating=rec.rating,
        )
        for rec in records
    ]
    try:
        db.add_all(items)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Saving {len(items)} recommendations for user {user_id} failed: {e}")
        raise StorageError("Failed to save recommendations") from e
    return items


async def get_recommendation(
    db: AsyncSession,
    recommendation_id: uuid.UUID,
    user_id: str,
) -> RatedItem | None:
    """Get a single recommendation by ID with user isolation."""
    result = await db.execute(
        select(RatedItem).where(RatedItem.id == recommendation_id, RatedItem.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_recommended_titles(db: AsyncSession, user_id: str) -> list[str]:
    """Every title ever recommended to the user, oldest first, without duplicates."""
    result = await db.execute(
        select(RatedItem.title).where(RatedItem.user_id == user_id).order_by(RatedItem.created_at)
    )
    return list(dict.fromkeys(result.scalars().all()))


async def get_watched_titles(db: AsyncSession, user_id: str) -> list[str]:
    """Titles the user marked watched on a recommendation card."""
    result = await db.execute(
        select(RatedItem.title).where(RatedItem.user_id == user_id, RatedItem.watched.is_(True))
    )
    return list(dict.fromkeys(result.scalars().all()))


async def get_rating_history(
    db: AsyncSession,
    user_id: str,
    limit: int = 30,
) -> list[RatedItem]:
    """Most recent rated recommendations, newest first."""
    result = await db.execute(
        select(RatedItem)
        .where(RatedItem.user_id == user_id, RatedItem.user_rating.is_not(None))
        .order_by(RatedItem.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_recent_recommendations(
    db: AsyncSession,
    user_id: str,
    limit: int = 50,
) -> list[RatedItem]:
    """Most recently served recommendations, rated or not."""
    result = await db.execute(
        select(RatedItem)
        .where(RatedItem.user_id == user_id)
        .order_by(RatedItem.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def update_feedback(
    db: AsyncSession,
    item: RatedItem,
    *,
    user_rating: int | None = None,
    watched: bool | None = None,
) -> RatedItem:
    """Write rating and/or watched status. Last write wins."""
    if user_rating is not None:
        item.user_rating = user_rating
    if watched is not None:
        item.watched = watched

    try:
        await db.commit()
        await db.refresh(item)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Saving feedback for recommendation {item.id} failed: {e}")
        raise StorageError("Failed to save feedback") from e
    return item
