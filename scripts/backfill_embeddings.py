#!/usr/bin/env python3
"""Generate missing embeddings for highly rated recommendations.

Ratings written before the embedding worker existed (or whose job was
dropped from a full queue) have no show_embeddings row. This script finds
every recommendation rated 4 or 5 without one and embeds it.

Usage:
    python scripts/backfill_embeddings.py [--user-id=ID] [--dry-run]

Options:
    --user-id   Only process recommendations for a specific user
    --dry-run   List what would be embedded without calling the provider
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import and_, select

from src.constants import EMBEDDING_RATING_FLOOR
from src.db.database import async_session_maker
from src.models.embedding import ItemEmbedding
from src.models.recommendation import RatedItem
from src.services.feedback.worker import EmbeddingJob, EmbeddingWorker


async def find_missing(user_id: str | None = None) -> list[EmbeddingJob]:
    """Rated recommendations lacking an embedding, one job per (user, title)."""
    async with async_session_maker() as db:
        query = (
            select(RatedItem)
            .outerjoin(
                ItemEmbedding,
                and_(ItemEmbedding.user_id == RatedItem.user_id, ItemEmbedding.title == RatedItem.title),
            )
            .where(RatedItem.user_rating >= EMBEDDING_RATING_FLOOR, ItemEmbedding.id.is_(None))
            .order_by(RatedItem.updated_at.desc())
        )
        if user_id:
            query = query.where(RatedItem.user_id == user_id)

        result = await db.execute(query)
        items = result.scalars().all()

    # The same title may have been recommended (and rated) more than once; newest rating wins
    jobs: dict[tuple[str, str], EmbeddingJob] = {}
    for item in items:
        jobs.setdefault(
            (item.user_id, item.title),
            EmbeddingJob(
                user_id=item.user_id,
                title=item.title,
                description=item.description,
                rating=item.user_rating,
                recommendation_id=item.id,
            ),
        )
    return list(jobs.values())


async def backfill(user_id: str | None = None, dry_run: bool = False) -> None:
    jobs = await find_missing(user_id)
    print(f"Found {len(jobs)} rated titles without an embedding")

    if dry_run:
        for job in jobs:
            print(f"  {job.user_id}: {job.title} ({job.rating}/5)")
        return

    worker = EmbeddingWorker()
    success_count = 0
    error_count = 0

    for i, job in enumerate(jobs, 1):
        if await worker.process(job):
            print(f"[{i}/{len(jobs)}] {job.title[:40]:40} - OK")
            success_count += 1
        else:
            print(f"[{i}/{len(jobs)}] {job.title[:40]:40} - FAILED")
            error_count += 1

    print("\n" + "=" * 50)
    print(f"Embedded: {success_count}")
    print(f"Errors: {error_count}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill missing title embeddings")
    parser.add_argument("--user-id", help="Only process this user's recommendations")
    parser.add_argument("--dry-run", action="store_true", help="List jobs without embedding")
    args = parser.parse_args()

    print("=" * 50)
    print("Backfilling embeddings")
    print("=" * 50)

    await backfill(user_id=args.user_id, dry_run=args.dry_run)

    # Release pooled connections before the loop closes
    from src.db.database import engine
    from src.utils.http_client import close_all_clients

    await close_all_clients()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
