"""Tests for recommendation, embedding and watched-show CRUD operations."""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.crud import (
    add_watched_show,
    create_recommendations,
    delete_embedding,
    get_rating_history,
    get_recent_recommendations,
    get_recommendation,
    get_recommended_titles,
    get_seed_embeddings,
    get_watched_shows,
    get_watched_titles,
    remove_watched_show,
    update_feedback,
    upsert_embedding,
)
from src.models.recommendation import RatedItem
from src.models.schemas import RecommendationRead
from tests.helpers import OTHER_USER_ID, TEST_USER_ID, count_embeddings, unit_vector


def record(title: str, type: str = "Movie", genre: str = "Comedy") -> RecommendationRead:
    return RecommendationRead(
        title=title, type=type, genre=genre, description=f"{title} desc", match_reason="fits", rating="7.1"
    )


@pytest_asyncio.fixture
async def served(db_session: AsyncSession) -> list[RatedItem]:
    """A batch already served to the test user."""
    return await create_recommendations(db_session, TEST_USER_ID, [record("First"), record("Second", "Series")])


class TestRecommendations:
    """Tests for the recommendations table."""

    @pytest.mark.asyncio
    async def test_create_assigns_ids(self, served: list[RatedItem]):
        assert all(isinstance(item.id, uuid.UUID) for item in served)
        assert served[0].user_rating is None
        assert served[0].watched is False

    @pytest.mark.asyncio
    async def test_get_recommendation_is_user_scoped(self, db_session: AsyncSession, served: list[RatedItem]):
        assert await get_recommendation(db_session, served[0].id, TEST_USER_ID) is not None
        assert await get_recommendation(db_session, served[0].id, OTHER_USER_ID) is None

    @pytest.mark.asyncio
    async def test_recommended_titles_deduplicated(self, db_session: AsyncSession, served: list[RatedItem]):
        await create_recommendations(db_session, TEST_USER_ID, [record("First"), record("Third")])
        await create_recommendations(db_session, OTHER_USER_ID, [record("Elsewhere")])

        titles = await get_recommended_titles(db_session, TEST_USER_ID)

        assert sorted(titles) == ["First", "Second", "Third"]

    @pytest.mark.asyncio
    async def test_feedback_and_history(self, db_session: AsyncSession, served: list[RatedItem]):
        first, second = served
        await update_feedback(db_session, first, user_rating=5)
        await update_feedback(db_session, second, watched=True)

        history = await get_rating_history(db_session, TEST_USER_ID)
        assert [item.title for item in history] == ["First"]
        assert await get_watched_titles(db_session, TEST_USER_ID) == ["Second"]

    @pytest.mark.asyncio
    async def test_last_write_wins(self, db_session: AsyncSession, served: list[RatedItem]):
        item = served[0]
        await update_feedback(db_session, item, user_rating=2)
        item = await update_feedback(db_session, item, user_rating=4, watched=True)

        assert item.user_rating == 4
        assert item.watched is True

    @pytest.mark.asyncio
    async def test_recent_recommendations_limit(self, db_session: AsyncSession, served: list[RatedItem]):
        items = await get_recent_recommendations(db_session, TEST_USER_ID, limit=1)
        assert len(items) == 1


class TestEmbeddings:
    """Tests for the show_embeddings table."""

    @pytest.mark.asyncio
    async def test_upsert_overwrites(self, db_session: AsyncSession):
        await upsert_embedding(db_session, TEST_USER_ID, "Loved", "old", unit_vector(0), 4)
        row = await upsert_embedding(db_session, TEST_USER_ID, "Loved", "new", unit_vector(1), 5)

        assert await count_embeddings(db_session, TEST_USER_ID, "Loved") == 1
        assert row.description == "new"
        assert row.user_rating == 5
        assert row.embedding == unit_vector(1)

    @pytest.mark.asyncio
    async def test_same_title_per_user(self, db_session: AsyncSession):
        await upsert_embedding(db_session, TEST_USER_ID, "Shared", "d", unit_vector(0), 4)
        await upsert_embedding(db_session, OTHER_USER_ID, "Shared", "d", unit_vector(0), 5)

        assert await count_embeddings(db_session, TEST_USER_ID) == 1
        assert await count_embeddings(db_session, OTHER_USER_ID) == 1

    @pytest.mark.asyncio
    async def test_low_rating_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await upsert_embedding(db_session, TEST_USER_ID, "Meh", "d", unit_vector(0), 3)
        assert await count_embeddings(db_session, TEST_USER_ID) == 0

    @pytest.mark.asyncio
    async def test_seed_embeddings_limit(self, db_session: AsyncSession):
        for i in range(4):
            await upsert_embedding(db_session, TEST_USER_ID, f"Loved {i}", "d", unit_vector(i), 5)

        seeds = await get_seed_embeddings(db_session, TEST_USER_ID, limit=3)
        assert len(seeds) == 3

    @pytest.mark.asyncio
    async def test_delete_embedding(self, db_session: AsyncSession):
        await upsert_embedding(db_session, TEST_USER_ID, "Gone", "d", unit_vector(0), 5)

        assert await delete_embedding(db_session, TEST_USER_ID, "Gone") is True
        assert await delete_embedding(db_session, TEST_USER_ID, "Gone") is False
        assert await count_embeddings(db_session, TEST_USER_ID) == 0


class TestWatchedShows:
    """Tests for the watched_shows table."""

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, db_session: AsyncSession):
        first = await add_watched_show(db_session, TEST_USER_ID, "  Severance ")
        again = await add_watched_show(db_session, TEST_USER_ID, "Severance")

        assert first.id == again.id
        assert first.title == "Severance"
        assert len(await get_watched_shows(db_session, TEST_USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, db_session: AsyncSession):
        with pytest.raises(ValueError):
            await add_watched_show(db_session, TEST_USER_ID, "   ")

    @pytest.mark.asyncio
    async def test_remove(self, db_session: AsyncSession):
        await add_watched_show(db_session, TEST_USER_ID, "Dark")

        assert await remove_watched_show(db_session, TEST_USER_ID, "Dark") is True
        assert await remove_watched_show(db_session, TEST_USER_ID, "Dark") is False

    @pytest.mark.asyncio
    async def test_user_isolation(self, db_session: AsyncSession):
        await add_watched_show(db_session, OTHER_USER_ID, "Private")

        assert await get_watched_shows(db_session, TEST_USER_ID) == []
        assert await remove_watched_show(db_session, TEST_USER_ID, "Private") is False
