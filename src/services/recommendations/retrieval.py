"""Embedding retrieval: titles similar to what the user loved before."""

import asyncio
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.db.crud.embeddings import SimilarityMatch, get_seed_embeddings, load_embedding_index
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Similarity scans are CPU-bound numpy work; keep them off the event loop
_retrieval_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="retrieval")


@dataclass(frozen=True)
class Candidate:
    """A retrieved title suggested to the synthesizer."""

    title: str
    description: str
    similarity: float
    seed_title: str


@dataclass(frozen=True)
class Seed:
    title: str
    embedding: list[float]


def _title_key(title: str) -> str:
    return title.strip().casefold()


def merge_candidates(
    seeds: Sequence[Seed],
    per_seed_matches: Sequence[Sequence[SimilarityMatch]],
    excluded_titles: Iterable[str],
    cap: int,
) -> list[Candidate]:
    """Union per-seed results into one ranked candidate list.

    Titles are deduplicated keeping their best similarity. Seed titles and
    excluded titles never appear. Ordering is similarity descending, then
    earliest seed, then rank within that seed's results, so the outcome does
    not depend on which query finished first.
    """
    excluded = {_title_key(t) for t in excluded_titles}
    excluded.update(_title_key(seed.title) for seed in seeds)

    best: dict[str, tuple[tuple[float, int, int], Candidate]] = {}
    for seed_idx, (seed, matches) in enumerate(zip(seeds, per_seed_matches)):
        for rank, match in enumerate(matches):
            key = _title_key(match.title)
            if not key or key in excluded:
                continue
            sort_key = (-match.similarity, seed_idx, rank)
            current = best.get(key)
            if current is None or sort_key < current[0]:
                best[key] = (
                    sort_key,
                    Candidate(match.title, match.description, match.similarity, seed.title),
                )

    ranked = sorted(best.values(), key=lambda item: item[0])
    return [candidate for _, candidate in ranked[:cap]]


class EmbeddingRetriever:
    """Nearest-neighbour retrieval seeded by the user's loved titles."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        seed_count: int | None = None,
        match_count: int | None = None,
        match_threshold: float | None = None,
        candidate_cap: int | None = None,
    ) -> None:
        settings = get_settings()
        self.db = db
        self.seed_count = seed_count or settings.retrieval_seed_count
        self.match_count = match_count or settings.retrieval_match_count
        self.match_threshold = (
            match_threshold if match_threshold is not None else settings.retrieval_match_threshold
        )
        self.candidate_cap = candidate_cap or settings.retrieval_candidate_cap

    async def retrieve(self, user_id: str, excluded_titles: Iterable[str] = ()) -> list[Candidate]:
        """Candidate titles for the user; empty for a user with no loved titles."""
        rows = await get_seed_embeddings(self.db, user_id, limit=self.seed_count)
        if not rows:
            logger.debug(f"No seed embeddings for user {user_id}")
            return []

        seeds = [Seed(row.title, list(row.embedding)) for row in rows]
        index = await load_embedding_index(self.db)

        loop = asyncio.get_running_loop()
        per_seed = await asyncio.gather(
            *(
                loop.run_in_executor(
                    _retrieval_executor,
                    index.match,
                    seed.embedding,
                    self.match_threshold,
                    self.match_count,
                )
                for seed in seeds
            )
        )

        candidates = merge_candidates(seeds, per_seed, excluded_titles, self.candidate_cap)
        logger.info(
            f"Retrieved {len(candidates)} candidates from {len(seeds)} seeds "
            f"over {len(index)} stored embeddings"
        )
        return candidates
