"""Tests for the embedding ingestion endpoint."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import TEST_USER_ID, FakeLlm, count_embeddings


class TestIngestEmbedding:
    """Tests for POST /api/embeddings."""

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/embeddings", json={"title": "Dune", "description": "Spice.", "rating": 5})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_stores_embedding(self, authenticated_client: AsyncClient, fake_llm: FakeLlm, db_session: AsyncSession):
        response = await authenticated_client.post(
            "/api/embeddings", json={"title": "Dune", "description": "Spice.", "rating": 5}
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert fake_llm.embed_calls == ["Dune: Spice."]
        assert await count_embeddings(db_session, TEST_USER_ID, "Dune") == 1

    @pytest.mark.asyncio
    async def test_resend_overwrites(self, authenticated_client: AsyncClient, db_session: AsyncSession):
        for rating in (4, 5):
            await authenticated_client.post(
                "/api/embeddings", json={"title": "Dune", "description": "Spice.", "rating": rating}
            )

        assert await count_embeddings(db_session, TEST_USER_ID, "Dune") == 1

    @pytest.mark.asyncio
    async def test_low_rating_skipped(self, authenticated_client: AsyncClient, db_session: AsyncSession):
        response = await authenticated_client.post(
            "/api/embeddings", json={"title": "Dune", "description": "Spice.", "rating": 3}
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Embeddings only generated for 4-5 star ratings",
        }
        assert await count_embeddings(db_session, TEST_USER_ID) == 0

    @pytest.mark.asyncio
    async def test_missing_description(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post("/api/embeddings", json={"title": "Dune", "rating": 5})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_provider_failure(self, authenticated_client: AsyncClient, fake_llm: FakeLlm):
        fake_llm.embed_failures = 1

        response = await authenticated_client.post(
            "/api/embeddings", json={"title": "Dune", "description": "Spice.", "rating": 5}
        )

        assert response.status_code == 502
