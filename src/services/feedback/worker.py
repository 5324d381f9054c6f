"""Background embedding generation for highly rated titles.

Rating writes hand a job to the queue and return immediately; the worker
generates the vector with retry and upserts it in its own session.
"""

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import get_settings
from src.constants import EMBEDDING_RATING_FLOOR, WORKER_SHUTDOWN_TIMEOUT
from src.db.crud.embeddings import upsert_embedding
from src.db.crud.recommendations import get_recommendation
from src.db.database import async_session_maker
from src.errors import RecommenderError
from src.services.llm import LlmClient, get_llm_client
from src.utils.logging import get_logger
from src.utils.metrics import metrics
from src.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)


@dataclass(frozen=True)
class EmbeddingJob:
    """A title to embed for a user."""

    user_id: str
    title: str
    description: str
    rating: int
    # Rated recommendation behind the job; re-checked before storing
    recommendation_id: uuid.UUID | None = None

    @property
    def text(self) -> str:
        return f"{self.title}: {self.description}"


class EmbeddingWorker:
    """asyncio.Queue consumer that keeps the embedding store current."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] | async_sessionmaker | None = None,
        llm_factory: Callable[[], LlmClient] = get_llm_client,
        *,
        maxsize: int | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory or async_session_maker
        self._llm_factory = llm_factory
        self._maxsize = maxsize or settings.embedding_queue_size
        self.retry_config = retry_config or RetryConfig(max_retries=settings.embedding_retry_attempts)
        self._queue: asyncio.Queue[EmbeddingJob] | None = None
        self._task: asyncio.Task | None = None

    @property
    def queue(self) -> asyncio.Queue[EmbeddingJob]:
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self._maxsize)
        return self._queue

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, job: EmbeddingJob) -> bool:
        """Enqueue a job without blocking. Never raises; a full queue drops the job."""
        if job.rating < EMBEDDING_RATING_FLOOR:
            return False
        try:
            self.queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(f"Embedding queue full, dropping job for '{job.title}' (user {job.user_id})")
            metrics.embedding_tasks_total.inc(status="dropped")
            return False
        metrics.embedding_queue_depth.set(self.queue.qsize())
        logger.debug(f"Queued embedding job for '{job.title}' (user {job.user_id})")
        return True

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="embedding_worker")
        logger.info("Embedding worker started")

    async def stop(self, timeout: float = WORKER_SHUTDOWN_TIMEOUT) -> None:
        """Drain pending jobs (bounded by timeout), then stop the consumer."""
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout)
            logger.info("Embedding queue drained")
        except TimeoutError:
            logger.warning(f"Embedding queue not drained in {timeout}s, {self.queue.qsize()} jobs dropped")

        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Embedding worker stopped")

    async def _run(self) -> None:
        while True:
            job = await self.queue.get()
            try:
                await self.process(job)
            except Exception as e:
                # Keep consuming whatever happens to one job
                logger.error(f"Embedding job for '{job.title}' crashed: {e}")
                metrics.embedding_tasks_total.inc(status="failed")
            finally:
                self.queue.task_done()
                metrics.embedding_queue_depth.set(self.queue.qsize())

    async def process(self, job: EmbeddingJob) -> bool:
        """Generate and store one embedding. Returns whether it was stored."""
        try:
            embedding = await retry_async(
                self._llm_factory().embed,
                job.text,
                config=self.retry_config,
                operation_name=f"embed '{job.title}'",
            )
            async with self._session_factory() as db:
                rating = job.rating
                if job.recommendation_id is not None:
                    item = await get_recommendation(db, job.recommendation_id, job.user_id)
                    rating = item.user_rating if item else None
                    if rating is None or rating < EMBEDDING_RATING_FLOOR:
                        logger.info(
                            f"Skipping embedding for '{job.title}' (user {job.user_id}): "
                            f"rating is now {rating}"
                        )
                        metrics.embedding_tasks_total.inc(status="skipped")
                        return False
                await upsert_embedding(db, job.user_id, job.title, job.description, embedding, rating)
        except (RecommenderError, SQLAlchemyError) as e:
            logger.error(f"Embedding generation failed for '{job.title}' (user {job.user_id}): {e}")
            metrics.embedding_tasks_total.inc(status="failed")
            return False

        metrics.embedding_tasks_total.inc(status="success")
        logger.info(f"Stored embedding for '{job.title}' (user {job.user_id})")
        return True


# Global worker instance, started in the application lifespan
embedding_worker = EmbeddingWorker()


def get_embedding_worker() -> EmbeddingWorker:
    """Dependency returning the process-wide embedding worker."""
    return embedding_worker
