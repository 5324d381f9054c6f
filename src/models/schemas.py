"""Pydantic schemas for API validation and serialization."""

import enum
import re
import uuid
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from src.constants import (
    MAX_ANSWER_ITEM_LENGTH,
    MAX_ANSWER_ITEMS,
    MAX_ANSWER_LENGTH,
    MAX_CONTENT_TYPE_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_GENRE_LENGTH,
    MAX_GENRES,
    MAX_HISTORY_ENTRIES,
    MAX_PREFERENCE_TEXT_LENGTH,
    MAX_QUESTION_LENGTH,
    MAX_REGION_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_WATCHED_SHOWS,
    MAX_WATCHED_TITLE_LENGTH,
    RATING_MAX,
    RATING_MIN,
)

MOVIE_WORDS = frozenset({"movie", "movies", "film", "films"})
SERIES_WORDS = frozenset({"series", "show", "shows", "tv", "episodes", "miniseries"})


def normalize_genres(value: Any) -> list[str]:
    """Normalize a genres answer into an ordered list of trimmed names.

    A comma-joined string is split, list items are split the same way,
    blanks are dropped and duplicates (case-insensitive) keep their first
    position. None becomes an empty list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = [value]
    elif isinstance(value, (list, tuple)):
        raw = [str(item) for item in value if item is not None]
    else:
        raise ValueError("genres must be a string or a list of strings")

    genres: list[str] = []
    seen: set[str] = set()
    for chunk in raw:
        for part in chunk.split(","):
            name = part.strip()
            if name and name.casefold() not in seen:
                seen.add(name.casefold())
                genres.append(name)
    return genres


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Questionnaire schemas
class QuestionKind(str, enum.Enum):
    """How a question is answered."""

    RADIO = "radio"
    CHECKBOX = "checkbox"


class QuestionRead(CamelModel):
    """A question issued to the user."""

    id: str
    prompt: str
    kind: QuestionKind
    options: list[str]


ShortAnswer = Annotated[str, StringConstraints(max_length=MAX_ANSWER_ITEM_LENGTH)]


class ConversationEntry(CamelModel):
    """One answered question in the running conversation."""

    question: str = Field(max_length=MAX_QUESTION_LENGTH)
    answer: Annotated[str, StringConstraints(max_length=MAX_ANSWER_LENGTH)] | Annotated[
        list[ShortAnswer], Field(max_length=MAX_ANSWER_ITEMS)
    ]
    question_id: str | None = Field(default=None, max_length=100)

    @property
    def answer_text(self) -> str:
        """The answer flattened to a single string."""
        if isinstance(self.answer, list):
            return ", ".join(self.answer)
        return self.answer


class ConversationStepRequest(CamelModel):
    """Conversation step request: the full history so far."""

    conversation_history: list[ConversationEntry] = Field(default_factory=list, max_length=MAX_HISTORY_ENTRIES)


PreferenceText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=MAX_PREFERENCE_TEXT_LENGTH)]


class PreferenceSet(CamelModel):
    """Preferences extracted from a completed questionnaire.

    Optional fields left unset mean "no preference".
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    mood: PreferenceText
    content_type: Annotated[str, StringConstraints(strip_whitespace=True, max_length=MAX_CONTENT_TYPE_LENGTH)] | None = None
    watch_time: PreferenceText
    genres: list[Annotated[str, StringConstraints(max_length=MAX_GENRE_LENGTH)]] = Field(
        default_factory=list, max_length=MAX_GENRES
    )
    company: PreferenceText
    watch_style: PreferenceText
    language: PreferenceText
    underrated: PreferenceText | None = None
    age_rating: PreferenceText | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def split_genres(cls, v: Any) -> list[str]:
        return normalize_genres(v)

    @property
    def content_type_filter(self) -> Literal["Movie", "Series"] | None:
        """Record type every recommendation must have, or None for a mix."""
        words = set(re.findall(r"[a-z]+", (self.content_type or "").casefold()))
        if "both" in words:
            return None
        movies = bool(words & MOVIE_WORDS)
        series = bool(words & SERIES_WORDS)
        if movies and not series:
            return "Movie"
        if series and not movies:
            return "Series"
        return None

    @property
    def maturity_band(self) -> Literal["family", "teen", "mature"] | None:
        """Requested maturity band, or None for no preference."""
        value = (self.age_rating or "").casefold()
        if "family" in value or "kid" in value:
            return "family"
        if "teen" in value:
            return "teen"
        if "mature" in value or "adult" in value:
            return "mature"
        return None


class ConversationStepResponse(CamelModel):
    """Outcome of one conversation step."""

    ready: bool
    confidence: int = Field(ge=0, le=100)
    needs_clarification: bool = False
    message: str | None = None
    next_question: QuestionRead | None = None
    preferences: PreferenceSet | None = None


# Recommendation schemas
class RecommendationRequest(CamelModel):
    """Recommendation request."""

    preferences: PreferenceSet
    watched_shows: list[Annotated[str, StringConstraints(max_length=MAX_WATCHED_TITLE_LENGTH)]] = Field(
        default_factory=list, max_length=MAX_WATCHED_SHOWS
    )
    region: str = Field(default="United States", max_length=MAX_REGION_LENGTH)


class RecommendationRead(CamelModel):
    """A single recommendation record."""

    id: uuid.UUID | None = None
    title: str
    type: Literal["Movie", "Series"]
    genre: str
    description: str
    match_reason: str
    rating: str


class RecommendationsResponse(CamelModel):
    """A synthesized batch."""

    recommendations: list[RecommendationRead]


class RatedItemRead(CamelModel):
    """A recommendation previously shown to the user, with feedback."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    title: str
    type: str
    genre: str
    description: str
    match_reason: str
    rating: str
    user_rating: int | None = None
    watched: bool = False
    created_at: datetime


# Feedback schemas
class RateRequest(CamelModel):
    """Rate a recommendation."""

    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)


class WatchedRequest(CamelModel):
    """Mark a recommendation watched or unwatched."""

    watched: bool
    liked: bool | None = None


class FeedbackResponse(CamelModel):
    """Feedback state of a recommendation after a write."""

    id: uuid.UUID
    user_rating: int | None
    watched: bool
    embedding_queued: bool = False


class EmbeddingIngestRequest(CamelModel):
    """Embedding ingestion request for a highly-rated title."""

    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)


class EmbeddingIngestResponse(CamelModel):
    """Embedding ingestion outcome."""

    success: bool
    message: str


# Watched-shows schemas
class WatchedShowCreate(CamelModel):
    """Add a title to the watched list."""

    title: str = Field(min_length=1, max_length=MAX_WATCHED_TITLE_LENGTH)


class WatchedShowRead(CamelModel):
    """Watched-list entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    title: str
    created_at: datetime
