"""Recommendation synthesis: generative ranking plus a constraint validator.

The generative call proposes titles; the validator enforces the hard
constraints (content type, maturity band, exclusions, regional exclusions,
duplicates, genre cap) and rejected records are replaced through bounded
follow-up calls.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from src.config import get_settings
from src.constants import MAX_PER_GENRE, RECOMMENDATION_BATCH_SIZE
from src.errors import MalformedResponse
from src.models.schemas import PreferenceSet, RecommendationRead
from src.services.llm import LlmClient
from src.services.recommendations.patterns import PatternAdvisory
from src.services.recommendations.prompts import (
    build_repair_prompt,
    build_system_prompt,
    build_user_prompt,
)
from src.services.recommendations.retrieval import Candidate
from src.utils.logging import LogContext, get_logger
from src.utils.metrics import metrics

logger = get_logger(__name__)

REQUIRED_FIELDS = ("title", "type", "genre", "description", "matchReason", "rating")

MOVIE_TYPES = frozenset({"movie", "film", "feature film"})
SERIES_TYPES = frozenset({"series", "tv series", "tv show", "show", "tv", "miniseries", "limited series", "docuseries"})

FAMILY_RATINGS = frozenset({"g", "pg", "tv-y", "tv-y7", "tv-y7-fv", "tv-g", "tv-pg", "u", "all", "7+"})
TEEN_RATINGS = frozenset({"pg-13", "tv-14", "12", "12a", "13+", "15", "16+", "m"})
MATURE_RATINGS = frozenset({"r", "nc-17", "tv-ma", "18", "18+", "x", "ma15+", "r18+", "nr-17"})
FAMILY_BLOCKED_GENRES = ("horror",)

MaturityClass = Literal["family", "teen", "mature"]


@dataclass(frozen=True)
class ProposedRecord:
    """One record as returned by the generative layer, after field checks."""

    title: str
    type: str
    genre: str
    description: str
    match_reason: str
    rating: str
    maturity_rating: str | None = None

    @property
    def primary_genre(self) -> str:
        genre = self.genre
        for sep in (",", "/", "|"):
            genre = genre.split(sep, 1)[0]
        return genre.strip()

    def to_read(self) -> RecommendationRead:
        return RecommendationRead(
            title=self.title,
            type=self.type,  # type: ignore[arg-type]
            genre=self.genre,
            description=self.description,
            match_reason=self.match_reason,
            rating=self.rating,
        )


@dataclass
class SynthesisContext:
    """Everything the synthesizer reasons over for one request."""

    preferences: PreferenceSet
    region: str
    watched_titles: list[str] = field(default_factory=list)
    exclusion_set: list[str] = field(default_factory=list)
    candidates: list[Candidate] = field(default_factory=list)
    advisory: PatternAdvisory = field(default_factory=PatternAdvisory)


def normalize_type(value: str) -> str | None:
    """Map a type label to Movie or Series."""
    text = value.strip().casefold()
    if text in MOVIE_TYPES:
        return "Movie"
    if text in SERIES_TYPES:
        return "Series"
    return None


def normalize_rating(value: str) -> str | None:
    """Numeric score as a string ("8.5", "8.5/10" -> "8.5"), or None when not numeric."""
    text = value.strip().split("/", 1)[0].strip()
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return text


def maturity_class(rating: str | None) -> MaturityClass | None:
    if not rating:
        return None
    text = rating.strip().casefold().removeprefix("rated ").strip()
    if text in FAMILY_RATINGS:
        return "family"
    if text in TEEN_RATINGS:
        return "teen"
    if text in MATURE_RATINGS:
        return "mature"
    return None


def parse_batch(data: Mapping[str, Any], expected: int) -> list[ProposedRecord]:
    """Strictly parse a generative batch.

    Raises:
        MalformedResponse: wrong record count, or a record missing a field.
    """
    records = data.get("recommendations")
    if not isinstance(records, list):
        raise MalformedResponse("Response is missing a 'recommendations' list")
    if len(records) != expected:
        raise MalformedResponse(f"Expected {expected} recommendations, got {len(records)}")

    parsed: list[ProposedRecord] = []
    for idx, record in enumerate(records):
        if not isinstance(record, dict):
            raise MalformedResponse(f"Recommendation {idx} is not an object")
        missing = [
            name
            for name in REQUIRED_FIELDS
            if record.get(name) is None or (isinstance(record.get(name), str) and not record[name].strip())
        ]
        if missing:
            raise MalformedResponse(f"Recommendation {idx} is missing fields: {', '.join(missing)}")

        maturity = record.get("maturityRating")
        parsed.append(
            ProposedRecord(
                title=str(record["title"]).strip(),
                type=str(record["type"]).strip(),
                genre=str(record["genre"]).strip(),
                description=str(record["description"]).strip(),
                match_reason=str(record["matchReason"]).strip(),
                rating=str(record["rating"]).strip(),
                maturity_rating=str(maturity).strip() if maturity else None,
            )
        )
    return parsed


class ConstraintValidator:
    """Applies the hard constraints to proposed records."""

    def __init__(
        self,
        preferences: PreferenceSet,
        *,
        excluded_titles: Sequence[str],
        regional_exclusions: Sequence[str] = (),
        max_per_genre: int = MAX_PER_GENRE,
    ) -> None:
        self.content_type = preferences.content_type_filter
        self.maturity_band = preferences.maturity_band
        self.excluded = {t.strip().casefold() for t in excluded_titles}
        self.regional = {t.strip().casefold() for t in regional_exclusions}
        self.max_per_genre = max_per_genre

    def check(self, record: ProposedRecord, accepted: Sequence[ProposedRecord]) -> tuple[ProposedRecord | None, str | None]:
        """Return the normalized record, or None with the rejection reason."""
        key = record.title.casefold()
        if key in self.excluded:
            return None, "already recommended or watched"
        if key in self.regional:
            return None, "not available in this region"
        if any(a.title.casefold() == key for a in accepted):
            return None, "duplicate title"

        record_type = normalize_type(record.type)
        if record_type is None:
            return None, f"unknown type '{record.type}'"
        if self.content_type and record_type != self.content_type:
            return None, f"type {record_type} does not match requested {self.content_type}"

        rating = normalize_rating(record.rating)
        if rating is None:
            return None, "rating is not numeric"

        if not self._maturity_ok(record):
            return None, f"outside the {self.maturity_band} age band"

        genre_key = record.primary_genre.casefold()
        if sum(1 for a in accepted if a.primary_genre.casefold() == genre_key) >= self.max_per_genre:
            return None, f"more than {self.max_per_genre} {record.primary_genre} titles"

        return (
            ProposedRecord(
                title=record.title,
                type=record_type,
                genre=record.genre,
                description=record.description,
                match_reason=record.match_reason,
                rating=rating,
                maturity_rating=record.maturity_rating,
            ),
            None,
        )

    def _maturity_ok(self, record: ProposedRecord) -> bool:
        if self.maturity_band in (None, "mature"):
            return True
        content_class = maturity_class(record.maturity_rating)
        if self.maturity_band == "family":
            if any(g in record.genre.casefold() for g in FAMILY_BLOCKED_GENRES):
                return False
            return content_class in (None, "family")
        # Teen band
        return content_class != "mature"

    def filter(
        self, records: Sequence[ProposedRecord], accepted: Sequence[ProposedRecord]
    ) -> tuple[list[ProposedRecord], list[tuple[str, str]]]:
        """Split records into newly accepted ones and (title, reason) rejections."""
        kept: list[ProposedRecord] = []
        rejected: list[tuple[str, str]] = []
        for record in records:
            normalized, reason = self.check(record, [*accepted, *kept])
            if normalized is None:
                rejected.append((record.title, reason or "rejected"))
            else:
                kept.append(normalized)
        return kept, rejected


class RecommendationSynthesizer:
    """Produces exactly one batch of validated recommendations."""

    def __init__(
        self,
        llm: LlmClient,
        *,
        batch_size: int = RECOMMENDATION_BATCH_SIZE,
        repair_rounds: int | None = None,
        regional_exclusions: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        settings = get_settings()
        self.llm = llm
        self.batch_size = batch_size
        self.repair_rounds = settings.synthesis_repair_rounds if repair_rounds is None else repair_rounds
        self.regional_exclusions = {
            region.casefold(): list(titles)
            for region, titles in (
                regional_exclusions if regional_exclusions is not None else settings.regional_exclusions
            ).items()
        }

    def regional_exclusions_for(self, region: str) -> list[str]:
        return self.regional_exclusions.get(region.strip().casefold(), [])

    async def synthesize(self, context: SynthesisContext) -> list[RecommendationRead]:
        """Generate, validate and repair until the batch is complete.

        Raises:
            MalformedResponse: unparseable output, or still short after the
                allowed repair rounds.
            UpstreamUnavailable: the generative provider failed.
        """
        log = LogContext(logger, region=context.region)
        regional = self.regional_exclusions_for(context.region)
        validator = ConstraintValidator(
            context.preferences,
            excluded_titles=[*context.exclusion_set, *context.watched_titles],
            regional_exclusions=regional,
        )

        system_prompt = build_system_prompt(context.preferences, context.region, self.batch_size)
        user_prompt = build_user_prompt(
            context.preferences,
            region=context.region,
            watched_titles=context.watched_titles,
            exclusions=context.exclusion_set,
            regional_exclusions=regional,
            candidates=context.candidates,
            advisory=context.advisory,
            count=self.batch_size,
        )

        data = await self.llm.complete_json(system_prompt, user_prompt)
        accepted, rejected = validator.filter(parse_batch(data, self.batch_size), [])
        all_rejected = list(rejected)

        rounds = 0
        while len(accepted) < self.batch_size and rounds < self.repair_rounds:
            rounds += 1
            missing = self.batch_size - len(accepted)
            metrics.synthesis_repairs_total.inc()
            log.warning(f"Repair round {rounds}: replacing {missing} rejected records {rejected}")

            repair_prompt = build_repair_prompt(
                user_prompt,
                accepted=[r.title for r in accepted],
                rejected=all_rejected,
                missing=missing,
            )
            data = await self.llm.complete_json(system_prompt, repair_prompt)
            kept, rejected = validator.filter(parse_batch(data, missing), accepted)
            accepted.extend(kept)
            all_rejected.extend(rejected)

        if len(accepted) < self.batch_size:
            raise MalformedResponse(
                f"Only {len(accepted)} of {self.batch_size} recommendations satisfied the constraints"
            )

        log.info(f"Synthesized {len(accepted)} recommendations after {rounds} repair rounds")
        return [record.to_read() for record in accepted[: self.batch_size]]
