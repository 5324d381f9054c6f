"""Tests for the embedding index and candidate retrieval."""

import math

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.crud import EmbeddingIndex, SimilarityMatch, load_embedding_index, upsert_embedding
from src.services.recommendations import EmbeddingRetriever
from src.services.recommendations.retrieval import Seed, merge_candidates
from tests.helpers import OTHER_USER_ID, TEST_USER_ID, unit_vector


def blend(weight: float) -> list[float]:
    """Vector whose cosine similarity with e0 is `weight`."""
    vector = unit_vector(0)
    vector[0] = weight
    vector[1] = math.sqrt(1 - weight**2)
    return vector


class TestEmbeddingIndex:
    """Tests for the in-memory similarity query."""

    def test_empty_index(self):
        index = EmbeddingIndex.build([])
        assert len(index) == 0
        assert index.match([1.0, 0.0], 0.5, 10) == []

    def test_threshold_is_exclusive_and_ordered(self):
        index = EmbeddingIndex.build(
            [
                ("Orthogonal", "", [0.0, 1.0, 0.0]),
                ("Same", "", [2.0, 0.0, 0.0]),
                ("Close", "", [1.0, 0.5, 0.0]),
            ]
        )
        matches = index.match([1.0, 0.0, 0.0], 0.0, 10)

        assert [m.title for m in matches] == ["Same", "Close"]
        assert matches[0].similarity == pytest.approx(1.0)
        assert matches[1].similarity == pytest.approx(1 / math.sqrt(1.25))

    def test_match_count_caps(self):
        index = EmbeddingIndex.build([(f"T{i}", "", [1.0, 0.1 * i]) for i in range(5)])
        assert len(index.match([1.0, 0.0], 0.1, 2)) == 2

    def test_zero_query_matches_nothing(self):
        index = EmbeddingIndex.build([("A", "", [1.0, 0.0])])
        assert index.match([0.0, 0.0], 0.1, 5) == []

    def test_dimension_mismatch(self):
        index = EmbeddingIndex.build([("A", "", [1.0, 0.0])])
        with pytest.raises(ValueError):
            index.match([1.0, 0.0, 0.0], 0.1, 5)


class TestMergeCandidates:
    """Tests for combining per-seed results."""

    def test_excludes_seeds_and_seen_titles(self):
        seeds = [Seed("Seed One", [1.0]), Seed("Seed Two", [1.0])]
        per_seed = [
            [SimilarityMatch("Seed One", "", 1.0), SimilarityMatch("Fresh", "", 0.9)],
            [SimilarityMatch("seed one", "", 0.95), SimilarityMatch("Already Seen", "", 0.9)],
        ]
        candidates = merge_candidates(seeds, per_seed, ["already seen"], cap=10)

        assert [c.title for c in candidates] == ["Fresh"]
        assert candidates[0].seed_title == "Seed One"

    def test_duplicates_keep_best_similarity(self):
        seeds = [Seed("A", [1.0]), Seed("B", [1.0])]
        per_seed = [
            [SimilarityMatch("Shared", "", 0.75)],
            [SimilarityMatch("shared", "", 0.85), SimilarityMatch("Other", "", 0.8)],
        ]
        candidates = merge_candidates(seeds, per_seed, [], cap=10)

        assert [c.title for c in candidates] == ["shared", "Other"]
        assert candidates[0].similarity == 0.85
        assert candidates[0].seed_title == "B"

    def test_ties_follow_seed_order(self):
        seeds = [Seed("A", [1.0]), Seed("B", [1.0])]
        per_seed = [[SimilarityMatch("From A", "", 0.8)], [SimilarityMatch("From B", "", 0.8)]]

        titles = [c.title for c in merge_candidates(seeds, per_seed, [], cap=10)]
        assert titles == ["From A", "From B"]

    def test_cap(self):
        seeds = [Seed("A", [1.0])]
        per_seed = [[SimilarityMatch(f"T{i}", "", 0.9 - i * 0.01) for i in range(10)]]

        assert len(merge_candidates(seeds, per_seed, [], cap=3)) == 3


class TestEmbeddingRetriever:
    """Tests for retrieval against stored embeddings."""

    @pytest.mark.asyncio
    async def test_cold_start_returns_nothing(self, db_session: AsyncSession):
        await upsert_embedding(db_session, OTHER_USER_ID, "Loved Elsewhere", "desc", unit_vector(0), 5)

        retriever = EmbeddingRetriever(db_session)
        assert await retriever.retrieve(TEST_USER_ID) == []

    @pytest.mark.asyncio
    async def test_retrieves_similar_titles_across_users(self, db_session: AsyncSession):
        await upsert_embedding(db_session, TEST_USER_ID, "My Favourite", "desc", unit_vector(0), 5)
        await upsert_embedding(db_session, OTHER_USER_ID, "Close Match", "close", blend(0.95), 5)
        await upsert_embedding(db_session, OTHER_USER_ID, "Weak Match", "weak", blend(0.5), 4)
        await upsert_embedding(db_session, OTHER_USER_ID, "Seen It", "seen", blend(0.9), 4)

        retriever = EmbeddingRetriever(db_session, match_threshold=0.7)
        candidates = await retriever.retrieve(TEST_USER_ID, excluded_titles=["seen it"])

        assert [c.title for c in candidates] == ["Close Match"]
        assert candidates[0].seed_title == "My Favourite"
        assert candidates[0].similarity == pytest.approx(0.95, abs=1e-4)

    @pytest.mark.asyncio
    async def test_candidate_cap(self, db_session: AsyncSession):
        await upsert_embedding(db_session, TEST_USER_ID, "Seed", "desc", unit_vector(0), 5)
        for i in range(5):
            await upsert_embedding(db_session, OTHER_USER_ID, f"Similar {i}", "d", blend(0.99 - i * 0.01), 5)

        retriever = EmbeddingRetriever(db_session, candidate_cap=2)
        candidates = await retriever.retrieve(TEST_USER_ID)

        assert [c.title for c in candidates] == ["Similar 0", "Similar 1"]

    @pytest.mark.asyncio
    async def test_similarity_query_over_stored_index(self, db_session: AsyncSession):
        await upsert_embedding(db_session, OTHER_USER_ID, "Close Match", "close", blend(0.95), 5)
        await upsert_embedding(db_session, OTHER_USER_ID, "Weak Match", "weak", blend(0.5), 5)

        index = await load_embedding_index(db_session)
        matches = index.match(unit_vector(0), 0.7, 10)

        assert [m.title for m in matches] == ["Close Match"]
        assert matches[0].description == "close"
