"""Shared test helpers: scripted provider client, payload builders, tokens."""

import json
import time
from typing import Any

import jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.errors import UpstreamUnavailable
from src.models.embedding import ItemEmbedding

TEST_USER_ID = "8f14e45f-ceea-467f-a0e6-0f2b9c1d7a11"
OTHER_USER_ID = "c9f0f895-fb98-4b91-9a7e-2f1f1d1f0b22"

BATCH_GENRES = ("Comedy", "Drama", "Adventure", "Animation", "Mystery", "Romance")

PREFERENCES = {
    "mood": "Pretty good, can't complain.",
    "contentType": "Both movies and series",
    "watchTime": "1-2 hours",
    "genres": ["Comedy", "Drama"],
    "company": "Just me",
    "watchStyle": "Fully focused, no distractions",
    "language": "Subtitles are fine",
}


def unit_vector(index: int, dimensions: int | None = None) -> list[float]:
    """Basis vector e_index in the configured embedding dimension."""
    dimensions = dimensions or get_settings().embedding_dimensions
    vector = [0.0] * dimensions
    vector[index % dimensions] = 1.0
    return vector


def make_record(
    title: str,
    type: str = "Movie",
    genre: str = "Comedy",
    rating: str = "7.5",
    maturity: str | None = "PG",
) -> dict[str, Any]:
    """A record shaped like the generative provider returns it."""
    record = {
        "title": title,
        "type": type,
        "genre": genre,
        "description": f"{title} is a crowd pleaser.",
        "matchReason": f"{title} fits the mood.",
        "rating": rating,
    }
    if maturity:
        record["maturityRating"] = maturity
    return record


def make_batch(*titles: str, type: str = "Movie", maturity: str | None = "PG") -> dict[str, Any]:
    """A batch whose genres rotate so the per-genre cap is never hit."""
    return {
        "recommendations": [
            make_record(title, type=type, genre=BATCH_GENRES[idx % len(BATCH_GENRES)], maturity=maturity)
            for idx, title in enumerate(titles)
        ]
    }


class FakeLlm:
    """Stand-in for the provider client with scripted responses.

    Completions are served in order from the queue; embeddings come from
    `vectors` keyed by title (the text before the first colon), otherwise
    the first basis vector.
    """

    def __init__(self) -> None:
        self.responses: list[dict[str, Any] | Exception] = []
        self.vectors: dict[str, list[float]] = {}
        self.completion_calls: list[tuple[str, str]] = []
        self.embed_calls: list[str] = []
        self.embed_failures = 0

    def queue(self, *responses: dict[str, Any] | Exception) -> None:
        self.responses.extend(responses)

    async def complete_json(self, system: str, user: str, *, temperature: float | None = None) -> dict[str, Any]:
        self.completion_calls.append((system, user))
        if not self.responses:
            raise AssertionError(f"Unexpected completion call: {user[:200]}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return json.loads(json.dumps(response))

    async def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        if self.embed_failures:
            self.embed_failures -= 1
            raise UpstreamUnavailable("embedding provider down")
        title = text.split(":", 1)[0]
        return list(self.vectors.get(title, unit_vector(0)))


def make_token(
    sub: str | None = TEST_USER_ID,
    *,
    expires_in: int = 3600,
    audience: str = "authenticated",
    secret: str | None = None,
) -> str:
    """Bearer token as issued by the identity provider."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "aud": audience,
        "email": "viewer@example.com",
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret or get_settings().auth_jwt_secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def count_embeddings(db: AsyncSession, user_id: str, title: str | None = None) -> int:
    """Stored embedding rows for a user, optionally for one title."""
    query = select(func.count()).select_from(ItemEmbedding).where(ItemEmbedding.user_id == user_id)
    if title is not None:
        query = query.where(ItemEmbedding.title == title)
    return (await db.execute(query)).scalar_one()
