"""Tests for recommendation synthesis and constraint validation."""

import pytest

from src.errors import MalformedResponse, UpstreamUnavailable
from src.models.schemas import PreferenceSet
from src.services.recommendations import RecommendationSynthesizer, SynthesisContext
from src.services.recommendations.synthesizer import (
    ConstraintValidator,
    ProposedRecord,
    maturity_class,
    normalize_rating,
    normalize_type,
    parse_batch,
)
from tests.helpers import PREFERENCES, FakeLlm, make_batch

TITLES = ("Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot")


def preferences(**overrides) -> PreferenceSet:
    return PreferenceSet(**{**PREFERENCES, **overrides})


def proposed(title: str, type: str = "Movie", genre: str = "Comedy", maturity: str | None = None) -> ProposedRecord:
    return ProposedRecord(title, type, genre, "desc", "reason", "7.0", maturity)


def synthesizer(llm: FakeLlm, **kwargs) -> RecommendationSynthesizer:
    kwargs.setdefault("repair_rounds", 2)
    kwargs.setdefault("regional_exclusions", {})
    return RecommendationSynthesizer(llm, **kwargs)


class TestNormalization:
    """Tests for field normalization helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("Movie", "Movie"), ("film", "Movie"), ("TV Series", "Series"), ("Miniseries", "Series"), ("Podcast", None)],
    )
    def test_normalize_type(self, value, expected):
        assert normalize_type(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"), [("8.5", "8.5"), ("8.5/10", "8.5"), (" 7 ", "7"), ("great", None), ("nan", None)]
    )
    def test_normalize_rating(self, value, expected):
        assert normalize_rating(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"), [("PG", "family"), ("Rated PG-13", "teen"), ("TV-MA", "mature"), ("Unrated", None), (None, None)]
    )
    def test_maturity_class(self, value, expected):
        assert maturity_class(value) == expected


class TestParseBatch:
    """Tests for strict batch parsing."""

    def test_parses_records(self):
        records = parse_batch(make_batch(*TITLES), 6)

        assert [r.title for r in records] == list(TITLES)
        assert records[0].match_reason == "Alpha fits the mood."
        assert records[0].maturity_rating == "PG"

    def test_wrong_count(self):
        with pytest.raises(MalformedResponse):
            parse_batch(make_batch(*TITLES[:5]), 6)

    def test_missing_list(self):
        with pytest.raises(MalformedResponse):
            parse_batch({"items": []}, 6)

    def test_missing_field(self):
        batch = make_batch(*TITLES)
        del batch["recommendations"][2]["matchReason"]
        with pytest.raises(MalformedResponse):
            parse_batch(batch, 6)

    def test_blank_field(self):
        batch = make_batch(*TITLES)
        batch["recommendations"][0]["title"] = "  "
        with pytest.raises(MalformedResponse):
            parse_batch(batch, 6)


class TestConstraintValidator:
    """Tests for the hard constraints."""

    def test_content_type_filter(self):
        validator = ConstraintValidator(preferences(contentType="Movies only"), excluded_titles=[])
        kept, rejected = validator.filter([proposed("A"), proposed("B", type="TV Show"), proposed("C", type="film")], [])

        assert [(r.title, r.type) for r in kept] == [("A", "Movie"), ("C", "Movie")]
        assert rejected[0][0] == "B"

    def test_exclusions_case_insensitive(self):
        validator = ConstraintValidator(preferences(), excluded_titles=["the office"])
        kept, rejected = validator.filter([proposed("The Office"), proposed("Parks")], [])

        assert [r.title for r in kept] == ["Parks"]
        assert rejected == [("The Office", "already recommended or watched")]

    def test_regional_exclusions(self):
        validator = ConstraintValidator(preferences(), excluded_titles=[], regional_exclusions=["Blocked"])
        kept, _ = validator.filter([proposed("blocked"), proposed("Open")], [])

        assert [r.title for r in kept] == ["Open"]

    def test_duplicate_titles(self):
        validator = ConstraintValidator(preferences(), excluded_titles=[])
        kept, _ = validator.filter([proposed("Same", genre="Drama"), proposed("same", genre="Comedy")], [])

        assert [r.title for r in kept] == ["Same"]

    def test_genre_cap(self):
        validator = ConstraintValidator(preferences(), excluded_titles=[])
        kept, rejected = validator.filter([proposed(t, genre="Comedy") for t in ("A", "B", "C")], [])

        assert [r.title for r in kept] == ["A", "B"]
        assert rejected[0][0] == "C"

    def test_genre_cap_uses_primary_genre(self):
        validator = ConstraintValidator(preferences(), excluded_titles=[])
        records = [proposed("A", genre="Comedy"), proposed("B", genre="comedy, Romance"), proposed("C", genre="Comedy/Drama")]
        kept, _ = validator.filter(records, [])

        assert [r.title for r in kept] == ["A", "B"]

    def test_family_band(self):
        validator = ConstraintValidator(preferences(ageRating="Family friendly"), excluded_titles=[])
        records = [
            proposed("Kids", maturity="PG"),
            proposed("Scary", genre="Horror", maturity="PG"),
            proposed("Adult", genre="Drama", maturity="R"),
            proposed("Teen", genre="Action", maturity="PG-13"),
            proposed("Unknown", genre="Mystery"),
        ]
        kept, _ = validator.filter(records, [])

        assert [r.title for r in kept] == ["Kids", "Unknown"]

    def test_teen_band(self):
        validator = ConstraintValidator(preferences(ageRating="Teen and up"), excluded_titles=[])
        kept, _ = validator.filter([proposed("Teen", maturity="TV-14"), proposed("Adult", genre="Drama", maturity="TV-MA")], [])

        assert [r.title for r in kept] == ["Teen"]

    def test_non_numeric_rating_rejected(self):
        validator = ConstraintValidator(preferences(), excluded_titles=[])
        record = ProposedRecord("A", "Movie", "Comedy", "d", "r", "excellent")
        kept, rejected = validator.filter([record], [])

        assert kept == []
        assert rejected == [("A", "rating is not numeric")]


class TestRecommendationSynthesizer:
    """Tests for generate-validate-repair."""

    @pytest.mark.asyncio
    async def test_valid_batch_needs_no_repair(self):
        llm = FakeLlm()
        llm.queue(make_batch(*TITLES))

        records = await synthesizer(llm).synthesize(SynthesisContext(preferences(), "United States"))

        assert [r.title for r in records] == list(TITLES)
        assert len(llm.completion_calls) == 1
        assert all(r.id is None for r in records)

    @pytest.mark.asyncio
    async def test_movies_only_replaces_series(self):
        batch = make_batch(*TITLES)
        batch["recommendations"][1]["type"] = "Series"
        batch["recommendations"][4]["type"] = "TV Series"
        llm = FakeLlm()
        llm.queue(batch, make_batch("Golf", "Hotel"))

        records = await synthesizer(llm).synthesize(
            SynthesisContext(preferences(contentType="Movies only"), "United States")
        )

        assert len(records) == 6
        assert {r.type for r in records} == {"Movie"}
        assert [r.title for r in records][-2:] == ["Golf", "Hotel"]
        _, repair_prompt = llm.completion_calls[1]
        assert "Return EXACTLY 2 NEW recommendations" in repair_prompt
        assert "Bravo" in repair_prompt

    @pytest.mark.asyncio
    async def test_watched_and_excluded_titles_replaced(self):
        llm = FakeLlm()
        llm.queue(make_batch(*TITLES), make_batch("Golf", "Hotel"))
        context = SynthesisContext(
            preferences(), "United States", watched_titles=["alpha"], exclusion_set=["BRAVO"]
        )

        records = await synthesizer(llm).synthesize(context)

        titles = [r.title for r in records]
        assert "Alpha" not in titles
        assert "Bravo" not in titles
        assert len(titles) == 6

    @pytest.mark.asyncio
    async def test_regional_exclusions_by_region(self):
        llm = FakeLlm()
        llm.queue(make_batch(*TITLES), make_batch("Golf"))
        synth = synthesizer(llm, regional_exclusions={"Canada": ["Charlie"]})

        records = await synth.synthesize(SynthesisContext(preferences(), "canada"))

        assert "Charlie" not in [r.title for r in records]
        assert "Known to be UNAVAILABLE in canada" in llm.completion_calls[0][1]

    @pytest.mark.asyncio
    async def test_still_short_after_repairs(self):
        batch = make_batch(*TITLES, type="Series")
        llm = FakeLlm()
        llm.queue(batch, make_batch(*TITLES, type="Series"), make_batch(*TITLES, type="Series"))

        with pytest.raises(MalformedResponse):
            await synthesizer(llm).synthesize(SynthesisContext(preferences(contentType="Movies only"), "United States"))
        assert len(llm.completion_calls) == 3

    @pytest.mark.asyncio
    async def test_wrong_repair_count_is_malformed(self):
        batch = make_batch(*TITLES)
        batch["recommendations"][0]["type"] = "Series"
        llm = FakeLlm()
        llm.queue(batch, make_batch("Golf", "Hotel"))

        with pytest.raises(MalformedResponse):
            await synthesizer(llm).synthesize(SynthesisContext(preferences(contentType="Movies only"), "United States"))

    @pytest.mark.asyncio
    async def test_provider_failure_propagates(self):
        llm = FakeLlm()
        llm.queue(UpstreamUnavailable("down"))

        with pytest.raises(UpstreamUnavailable):
            await synthesizer(llm).synthesize(SynthesisContext(preferences(), "United States"))

    @pytest.mark.asyncio
    async def test_prompt_carries_preferences(self):
        llm = FakeLlm()
        llm.queue(make_batch(*TITLES))

        await synthesizer(llm).synthesize(
            SynthesisContext(preferences(ageRating="Family friendly"), "Germany", exclusion_set=["Old One"])
        )

        system, user = llm.completion_calls[0]
        assert "Return EXACTLY 6 recommendations" in system
        assert "Germany" in system
        assert "ONLY family friendly content" in system
        assert "Genres: Comedy, Drama" in user
        assert "Old One" in user

