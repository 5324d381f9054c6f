"""Recommendation engine: enrichment, synthesis and persistence for one request."""

from collections.abc import Awaitable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.models import AuthenticatedUser
from src.config import get_settings
from src.db.crud import (
    create_recommendations,
    get_rating_history,
    get_recommended_titles,
    get_watched_shows,
    get_watched_titles,
)
from src.errors import StorageError
from src.models.schemas import RecommendationRead, RecommendationRequest
from src.services.llm import LlmClient
from src.services.recommendations.patterns import analyze_patterns
from src.services.recommendations.retrieval import EmbeddingRetriever
from src.services.recommendations.synthesizer import RecommendationSynthesizer, SynthesisContext
from src.utils.logging import LogContext, get_logger
from src.utils.metrics import metrics

logger = get_logger(__name__)

T = TypeVar("T")


class RecommendationEngine:
    """Hybrid recommendation pipeline.

    Strategy:
    1. Load optional context for authenticated users: previously recommended
       titles, stored watched list, rating history, embedding candidates
    2. Analyze rating history into a weighting advisory
    3. Synthesize a validated batch through the generative provider
    4. Persist the batch as the user's new recommendations

    Enrichment reads are best-effort: a failed read is logged and the
    pipeline continues with less context. Persisting the batch is not.
    """

    def __init__(
        self,
        db: AsyncSession,
        llm: LlmClient,
        *,
        retriever: EmbeddingRetriever | None = None,
        synthesizer: RecommendationSynthesizer | None = None,
    ) -> None:
        self.db = db
        self.settings = get_settings()
        self.retriever = retriever or EmbeddingRetriever(db)
        self.synthesizer = synthesizer or RecommendationSynthesizer(llm)

    async def recommend(
        self,
        request: RecommendationRequest,
        user: AuthenticatedUser | None = None,
    ) -> list[RecommendationRead]:
        user_id = user.id if user else None
        log = LogContext(logger, user=user_id or "anonymous", region=request.region)

        watched = list(dict.fromkeys(t.strip() for t in request.watched_shows if t.strip()))
        recommended: list[str] = []
        history = []
        candidates = []

        if user_id:
            recommended = await self._optional("recommended_titles", get_recommended_titles(self.db, user_id), [])
            stored_watched = await self._optional("watched_shows", self._stored_watched(user_id), [])
            watched = list(dict.fromkeys([*watched, *stored_watched]))
            history = await self._optional(
                "rating_history",
                get_rating_history(self.db, user_id, limit=self.settings.pattern_history_limit),
                [],
            )
            candidates = await self._optional(
                "retrieval",
                self.retriever.retrieve(user_id, excluded_titles=[*watched, *recommended]),
                [],
            )

        advisory = analyze_patterns(history, recommended)
        log.info(
            f"Context: {len(watched)} watched, {len(recommended)} excluded, "
            f"{len(history)} rated, {len(candidates)} candidates"
        )

        records = await self.synthesizer.synthesize(
            SynthesisContext(
                preferences=request.preferences,
                region=request.region,
                watched_titles=watched,
                exclusion_set=advisory.excluded_titles,
                candidates=candidates,
                advisory=advisory,
            )
        )

        if not user_id:
            return records

        items = await create_recommendations(self.db, user_id, records)
        log.info(f"Saved {len(items)} recommendations")
        return [record.model_copy(update={"id": item.id}) for record, item in zip(records, items)]

    async def _stored_watched(self, user_id: str) -> list[str]:
        shows = await get_watched_shows(self.db, user_id)
        marked = await get_watched_titles(self.db, user_id)
        return [*(show.title for show in shows), *marked]

    async def _optional(self, stage: str, read: Awaitable[T], default: T) -> T:
        """Await an enrichment read, falling back to default on storage failure."""
        try:
            return await read
        except (SQLAlchemyError, StorageError, ValueError) as e:
            logger.warning(f"Enrichment read '{stage}' failed, continuing without it: {e}")
            metrics.enrichment_failures_total.inc(stage=stage)
            await self.db.rollback()
            return default
