"""CRUD operations for title embeddings and the similarity query."""

import logging
from dataclasses import dataclass

import numpy as np
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.constants import EMBEDDING_RATING_FLOOR
from src.errors import StorageError
from src.models.embedding import ItemEmbedding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimilarityMatch:
    """Row returned by the similarity query."""

    title: str
    description: str
    similarity: float


@dataclass
class EmbeddingIndex:
    """In-memory snapshot of the embedding store for nearest-neighbour search.

    Vectors are L2-normalized once so cosine similarity is a dot product.
    """

    titles: list[str]
    descriptions: list[str]
    matrix: np.ndarray

    @classmethod
    def build(cls, rows: list[tuple[str, str, list[float]]]) -> "EmbeddingIndex":
        if not rows:
            return cls([], [], np.zeros((0, 0), dtype=np.float32))
        matrix = np.asarray([row[2] for row in rows], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return cls(
            titles=[row[0] for row in rows],
            descriptions=[row[1] for row in rows],
            matrix=matrix / norms,
        )

    def __len__(self) -> int:
        return len(self.titles)

    def match(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[SimilarityMatch]:
        """Rows with similarity strictly above the threshold, most similar first."""
        if not self.titles or match_count <= 0:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        if query.shape[0] != self.matrix.shape[1]:
            raise ValueError(
                f"Query embedding has {query.shape[0]} dimensions, index has {self.matrix.shape[1]}"
            )
        norm = np.linalg.norm(query)
        if norm == 0:
            return []

        similarities = self.matrix @ (query / norm)
        # Stable sort keeps insertion order among equal similarities
        order = np.argsort(-similarities, kind="stable")

        matches: list[SimilarityMatch] = []
        for idx in order:
            similarity = float(similarities[idx])
            if similarity <= match_threshold:
                break
            matches.append(SimilarityMatch(self.titles[idx], self.descriptions[idx], similarity))
            if len(matches) >= match_count:
                break
        return matches


async def upsert_embedding(
    db: AsyncSession,
    user_id: str,
    title: str,
    description: str,
    embedding: list[float],
    user_rating: int,
) -> ItemEmbedding:
    """Insert or overwrite the embedding for (user_id, title)."""
    if user_rating < EMBEDDING_RATING_FLOOR:
        raise ValueError(f"Embeddings are only stored for ratings >= {EMBEDDING_RATING_FLOOR}")

    for attempt in range(2):
        try:
            result = await db.execute(
                select(ItemEmbedding).where(ItemEmbedding.user_id == user_id, ItemEmbedding.title == title)
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = ItemEmbedding(user_id=user_id, title=title)
                db.add(row)
            row.description = description
            row.embedding = list(embedding)
            row.user_rating = user_rating
            await db.commit()
            await db.refresh(row)
            return row
        except IntegrityError as e:
            # A concurrent insert for the same (user_id, title) won; update it instead
            await db.rollback()
            if attempt == 1:
                logger.error(f"Upserting embedding for '{title}' failed twice: {e}")
                raise StorageError("Failed to save embedding") from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Upserting embedding for '{title}' failed: {e}")
            raise StorageError("Failed to save embedding") from e

    raise StorageError("Failed to save embedding")


async def get_seed_embeddings(
    db: AsyncSession,
    user_id: str,
    limit: int = 10,
) -> list[ItemEmbedding]:
    """The user's most recently loved titles that carry an embedding."""
    result = await db.execute(
        select(ItemEmbedding)
        .where(ItemEmbedding.user_id == user_id, ItemEmbedding.user_rating >= EMBEDDING_RATING_FLOOR)
        .order_by(ItemEmbedding.updated_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def load_embedding_index(db: AsyncSession) -> EmbeddingIndex:
    """Load every stored vector into an in-memory index.

    `EmbeddingIndex.match` on the result is the similarity query over the
    whole store: {title, description, similarity} above the threshold,
    descending, capped.
    """
    result = await db.execute(
        select(ItemEmbedding.title, ItemEmbedding.description, ItemEmbedding.embedding).order_by(
            ItemEmbedding.created_at
        )
    )
    return EmbeddingIndex.build([(row.title, row.description, row.embedding) for row in result.all()])


async def delete_embedding(db: AsyncSession, user_id: str, title: str) -> bool:
    """Drop the stored embedding for (user_id, title), if any."""
    result = await db.execute(
        select(ItemEmbedding).where(ItemEmbedding.user_id == user_id, ItemEmbedding.title == title)
    )
    row = result.scalar_one_or_none()
    if row is None:
        return False
    try:
        await db.delete(row)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Deleting embedding for '{title}' failed: {e}")
        raise StorageError("Failed to delete embedding") from e
    return True
