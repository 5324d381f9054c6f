"""Preference-pattern analysis over a user's rating history.

The advisory is weighting guidance for the synthesizer, never a hard
filter. An empty history produces an empty advisory.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from src.constants import (
    DISLIKED_RATING,
    LOVED_RATING,
    POOR_GENRE_AVG,
    RECENT_RATINGS_WINDOW,
    TOP_GENRE_AVG,
    TYPE_PREFERENCE_MARGIN,
)
from src.models.recommendation import RatedItem


@dataclass(frozen=True)
class RatedSignal:
    """One rated recommendation as seen by the analyzer."""

    title: str
    type: str
    genre: str
    rating: int
    watched: bool
    match_reason: str = ""

    @classmethod
    def from_item(cls, item: RatedItem) -> "RatedSignal":
        return cls(
            title=item.title,
            type=item.type,
            genre=item.genre,
            rating=item.user_rating or 0,
            watched=bool(item.watched),
            match_reason=item.match_reason or "",
        )

    def describe(self) -> str:
        return f"{self.title} ({self.type}, {self.genre})"


@dataclass(frozen=True)
class GenreStat:
    genre: str
    average: float
    count: int


@dataclass
class PatternAdvisory:
    """Structured guidance derived from rating history."""

    recent: list[RatedSignal] = field(default_factory=list)
    older: list[RatedSignal] = field(default_factory=list)
    loved: list[RatedSignal] = field(default_factory=list)
    disliked: list[RatedSignal] = field(default_factory=list)
    genre_stats: list[GenreStat] = field(default_factory=list)
    top_genres: list[str] = field(default_factory=list)
    poor_genres: list[str] = field(default_factory=list)
    type_averages: dict[str, float] = field(default_factory=dict)
    preferred_type: str | None = None
    strong_positive: list[RatedSignal] = field(default_factory=list)
    soft_positive: list[RatedSignal] = field(default_factory=list)
    strong_negative: list[RatedSignal] = field(default_factory=list)
    excluded_titles: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.recent or self.older)


def _primary_genre(genre: str) -> str:
    for sep in (",", "/", "|"):
        if sep in genre:
            genre = genre.split(sep, 1)[0]
    return genre.strip()


def analyze_patterns(
    history: Sequence[RatedItem | RatedSignal],
    excluded_titles: Iterable[str] = (),
) -> PatternAdvisory:
    """Compute the advisory for rated items ordered newest first.

    Args:
        history: Rated items, newest first (unrated rows are ignored).
        excluded_titles: Every title already recommended to the user.
    """
    signals = [
        item if isinstance(item, RatedSignal) else RatedSignal.from_item(item)
        for item in history
    ]
    signals = [s for s in signals if s.rating > 0]
    advisory = PatternAdvisory(excluded_titles=list(dict.fromkeys(excluded_titles)))
    if not signals:
        return advisory

    advisory.recent = signals[:RECENT_RATINGS_WINDOW]
    advisory.older = signals[RECENT_RATINGS_WINDOW:]
    advisory.loved = [s for s in signals if s.rating >= LOVED_RATING]
    advisory.disliked = [s for s in signals if s.rating <= DISLIKED_RATING]

    # Per-genre averages keyed case-insensitively, first spelling wins
    genre_ratings: dict[str, list[int]] = {}
    genre_names: dict[str, str] = {}
    for s in signals:
        name = _primary_genre(s.genre)
        if not name:
            continue
        key = name.casefold()
        genre_names.setdefault(key, name)
        genre_ratings.setdefault(key, []).append(s.rating)

    stats = [
        GenreStat(genre_names[key], sum(ratings) / len(ratings), len(ratings))
        for key, ratings in genre_ratings.items()
    ]
    stats.sort(key=lambda stat: (-stat.average, -stat.count, stat.genre))
    advisory.genre_stats = stats
    advisory.top_genres = [stat.genre for stat in stats if stat.average >= TOP_GENRE_AVG]
    advisory.poor_genres = [stat.genre for stat in stats if stat.average <= POOR_GENRE_AVG]

    type_ratings: dict[str, list[int]] = {}
    for s in signals:
        type_ratings.setdefault(s.type, []).append(s.rating)
    advisory.type_averages = {t: sum(r) / len(r) for t, r in type_ratings.items()}

    movie_avg = advisory.type_averages.get("Movie")
    series_avg = advisory.type_averages.get("Series")
    if movie_avg is not None and series_avg is not None:
        if movie_avg - series_avg > TYPE_PREFERENCE_MARGIN:
            advisory.preferred_type = "Movie"
        elif series_avg - movie_avg > TYPE_PREFERENCE_MARGIN:
            advisory.preferred_type = "Series"

    advisory.strong_positive = [s for s in signals if s.watched and s.rating >= LOVED_RATING]
    advisory.soft_positive = [s for s in signals if not s.watched and s.rating >= LOVED_RATING]
    advisory.strong_negative = [s for s in signals if s.watched and s.rating <= DISLIKED_RATING]
    return advisory
