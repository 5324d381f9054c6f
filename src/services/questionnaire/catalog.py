"""Static question catalog for the preference questionnaire.

Every question belongs to exactly one preference category. Some categories
carry variants: a simpler re-ask used after a vague answer, and adaptive
option lists picked from earlier answers (lighter genres after a rough
day, family genres when watching with kids).
"""

import enum
import re
import string
from dataclasses import dataclass

from src.models.schemas import QuestionKind, QuestionRead


class Category(str, enum.Enum):
    """Preference categories a question can fill."""

    MOOD = "mood"
    CONTENT_TYPE = "content_type"
    WATCH_TIME = "watch_time"
    GENRES = "genres"
    COMPANY = "company"
    WATCH_STYLE = "watch_style"
    LANGUAGE = "language"
    UNDERRATED = "underrated"
    AGE_RATING = "age_rating"


REQUIRED_CATEGORIES: tuple[Category, ...] = (
    Category.MOOD,
    Category.CONTENT_TYPE,
    Category.WATCH_TIME,
    Category.GENRES,
    Category.COMPANY,
    Category.WATCH_STYLE,
    Category.LANGUAGE,
)

OPTIONAL_CATEGORIES: tuple[Category, ...] = (Category.UNDERRATED, Category.AGE_RATING)

# Order in which missing categories are asked. Company comes before genres
# so the genre options can adapt to who is watching.
ASK_ORDER: tuple[Category, ...] = (
    Category.MOOD,
    Category.CONTENT_TYPE,
    Category.WATCH_TIME,
    Category.COMPANY,
    Category.GENRES,
    Category.WATCH_STYLE,
    Category.LANGUAGE,
    Category.UNDERRATED,
    Category.AGE_RATING,
)

# Confidence credit per category
REQUIRED_WEIGHT = 12
GENRES_WEIGHT = 14
GENRES_PARTIAL_WEIGHT = 7
OPTIONAL_WEIGHT = 7
MIN_GENRES = 2


@dataclass(frozen=True)
class QuestionTemplate:
    """A catalog question. Immutable once issued."""

    id: str
    category: Category | None
    prompt: str
    kind: QuestionKind
    options: tuple[str, ...]

    def to_question(self) -> QuestionRead:
        return QuestionRead(id=self.id, prompt=self.prompt, kind=self.kind, options=list(self.options))


def _radio(id: str, category: Category | None, prompt: str, *options: str) -> QuestionTemplate:
    return QuestionTemplate(id, category, prompt, QuestionKind.RADIO, options)


def _checkbox(id: str, category: Category, prompt: str, *options: str) -> QuestionTemplate:
    return QuestionTemplate(id, category, prompt, QuestionKind.CHECKBOX, options)


MOOD_QUESTION = _radio(
    "mood",
    Category.MOOD,
    "How is your day going so far?",
    "Great, everything is going well!",
    "Pretty good, can't complain.",
    "It's okay, nothing special.",
    "A bit stressful, to be honest.",
    "Not so great, having a rough day.",
    "Could be better, thanks for asking.",
    "I'm feeling tired or overwhelmed.",
    "Excited and productive today",
)

PRIMARY_QUESTIONS: dict[Category, QuestionTemplate] = {
    Category.MOOD: MOOD_QUESTION,
    Category.CONTENT_TYPE: _radio(
        "content_type",
        Category.CONTENT_TYPE,
        "Are you in the mood for a movie or a series?",
        "Movies only",
        "Series only",
        "Both movies and series",
    ),
    Category.WATCH_TIME: _radio(
        "watch_time",
        Category.WATCH_TIME,
        "How much time do you have to watch?",
        "Less than 30 minutes",
        "About an hour",
        "1-2 hours",
        "A whole evening, binge mode",
    ),
    Category.COMPANY: _radio(
        "company",
        Category.COMPANY,
        "Who are you watching with?",
        "Just me",
        "With my partner",
        "With friends",
        "With family and kids",
    ),
    Category.GENRES: _checkbox(
        "genres",
        Category.GENRES,
        "Which genres sound good right now? Pick at least two.",
        "Comedy",
        "Drama",
        "Action",
        "Thriller",
        "Horror",
        "Romance",
        "Sci-Fi",
        "Fantasy",
        "Crime",
        "Mystery",
        "Documentary",
        "Animation",
    ),
    Category.WATCH_STYLE: _radio(
        "watch_style",
        Category.WATCH_STYLE,
        "How do you want to watch?",
        "Fully focused, no distractions",
        "In the background while doing other things",
        "Something nostalgic and comforting",
        "Something to talk about afterwards",
    ),
    Category.LANGUAGE: _radio(
        "language",
        Category.LANGUAGE,
        "How do you feel about language and subtitles?",
        "English only",
        "Subtitles are fine",
        "I love foreign-language content",
        "Dubbed is fine",
    ),
    Category.UNDERRATED: _radio(
        "underrated",
        Category.UNDERRATED,
        "Interested in hidden gems and underrated titles?",
        "Yes, surprise me with hidden gems",
        "A mix of popular and underrated",
        "Stick to popular hits",
    ),
    Category.AGE_RATING: _radio(
        "age_rating",
        Category.AGE_RATING,
        "Any age-rating preference?",
        "Family friendly",
        "Teen and up",
        "Mature content is fine",
        "No preference",
    ),
}

LIGHT_GENRES_QUESTION = _checkbox(
    "genres_light",
    Category.GENRES,
    "Sounds like a long day. Which lighter genres would help you unwind? Pick at least two.",
    "Comedy",
    "Romance",
    "Animation",
    "Feel-good Drama",
    "Adventure",
    "Fantasy",
    "Documentary",
)

FAMILY_GENRES_QUESTION = _checkbox(
    "genres_family",
    Category.GENRES,
    "Which genres work for the whole family? Pick at least two.",
    "Animation",
    "Family",
    "Comedy",
    "Adventure",
    "Fantasy",
    "Documentary",
)

SIMPLE_QUESTIONS: dict[Category, QuestionTemplate] = {
    Category.MOOD: _radio("mood_simple", Category.MOOD, "Quick one: is today good, okay or rough?", "Good", "Okay", "Rough"),
    Category.CONTENT_TYPE: _radio(
        "content_type_simple", Category.CONTENT_TYPE, "Movie or series?", "Movies only", "Series only", "Both movies and series"
    ),
    Category.WATCH_TIME: _radio(
        "watch_time_simple", Category.WATCH_TIME, "Short or long watch?", "Less than 30 minutes", "1-2 hours"
    ),
    Category.COMPANY: _radio("company_simple", Category.COMPANY, "Alone or with others?", "Just me", "With others"),
    Category.GENRES: _checkbox(
        "genres_simple",
        Category.GENRES,
        "Just tick any two that sound fun.",
        "Comedy",
        "Drama",
        "Action",
        "Romance",
        "Animation",
    ),
    Category.WATCH_STYLE: _radio(
        "watch_style_simple", Category.WATCH_STYLE, "Focused or in the background?", "Fully focused", "In the background"
    ),
    Category.LANGUAGE: _radio(
        "language_simple", Category.LANGUAGE, "Are subtitles okay?", "Subtitles are fine", "English only"
    ),
    Category.UNDERRATED: _radio(
        "underrated_simple", Category.UNDERRATED, "Popular hits or hidden gems?", "Stick to popular hits", "Yes, surprise me with hidden gems"
    ),
    Category.AGE_RATING: _radio(
        "age_rating_simple", Category.AGE_RATING, "Family friendly or anything goes?", "Family friendly", "No preference"
    ),
}

# Clarification questions resolve a contradiction or offer a shortcut; they
# fill no category themselves.
INTENSITY_CHECK = _radio(
    "intensity_check",
    None,
    "You mentioned a tough day but picked some intense genres. What would feel best right now?",
    "Something light to unwind",
    "Keep it intense, I want the thrill",
)

MATURITY_CHECK = _radio(
    "maturity_check",
    None,
    "You're watching with kids but mature content came up. Should we keep it family friendly?",
    "Keep it family friendly",
    "The kids are asleep, mature is fine",
)

FALLBACK_CLASSICS = _radio(
    "fallback_classics",
    None,
    "No problem! Want us to just pick some popular classics everyone enjoys?",
    "Yes, show me popular classics",
    "No, let's keep going",
)

CLARIFICATION_QUESTIONS = (INTENSITY_CHECK, MATURITY_CHECK, FALLBACK_CLASSICS)

# Filled into every category the user skipped after accepting the classics fallback
CLASSICS_DEFAULTS: dict[Category, str | list[str]] = {
    Category.MOOD: "Open to anything",
    Category.CONTENT_TYPE: "Both movies and series",
    Category.WATCH_TIME: "1-2 hours",
    Category.GENRES: ["Comedy", "Drama", "Adventure"],
    Category.COMPANY: "Just me",
    Category.WATCH_STYLE: "Fully focused, no distractions",
    Category.LANGUAGE: "Subtitles are fine",
    Category.UNDERRATED: "Stick to popular hits",
}

LIGHT_FILL_GENRES = ("Comedy", "Feel-good Drama", "Animation")
FAMILY_FILL_GENRES = ("Animation", "Family", "Comedy")

ALL_QUESTIONS: tuple[QuestionTemplate, ...] = (
    *PRIMARY_QUESTIONS.values(),
    LIGHT_GENRES_QUESTION,
    FAMILY_GENRES_QUESTION,
    *SIMPLE_QUESTIONS.values(),
    *CLARIFICATION_QUESTIONS,
)

_BY_ID = {q.id: q for q in ALL_QUESTIONS}


def _normalize_text(text: str) -> str:
    return " ".join(text.casefold().split())


_BY_PROMPT = {_normalize_text(q.prompt): q for q in ALL_QUESTIONS}


def find_question(question_id: str | None, prompt: str) -> QuestionTemplate | None:
    """Resolve a history entry to its catalog question by id, then by prompt."""
    if question_id and question_id in _BY_ID:
        return _BY_ID[question_id]
    return _BY_PROMPT.get(_normalize_text(prompt))


def question_for(category: Category, *, negative_mood: bool = False, with_kids: bool = False) -> QuestionTemplate:
    """The question to ask for a category, adapted to earlier answers."""
    if category is Category.GENRES:
        if with_kids:
            return FAMILY_GENRES_QUESTION
        if negative_mood:
            return LIGHT_GENRES_QUESTION
    return PRIMARY_QUESTIONS[category]


# Answer heuristics

VAGUE_PHRASES = frozenset(
    {
        "i don't know",
        "i dont know",
        "idk",
        "dunno",
        "don't know",
        "dont know",
        "not sure",
        "no idea",
        "whatever",
        "anything",
        "don't care",
        "dont care",
        "i don't care",
        "doesn't matter",
        "doesnt matter",
        "meh",
        "nothing",
        "no clue",
        "who knows",
        "eh",
        "hmm",
        "ok",
        "k",
        "?",
    }
)

MIN_FREE_TEXT_LENGTH = 3

NEGATIVE_MOOD_MARKERS = (
    "stress",
    "rough",
    "tired",
    "overwhelm",
    "not so great",
    "could be better",
    "bad day",
    "sad",
    "anxious",
    "exhausted",
    "down",
)

INTENSE_GENRES = ("horror", "thriller")
MATURE_GENRES = ("horror",)
KIDS_MARKERS = ("kid", "child", "family")

_PUNCTUATION = str.maketrans("", "", string.punctuation.replace("'", "").replace("?", ""))


def is_vague_answer(answer: str | list[str], template: QuestionTemplate | None = None) -> bool:
    """Whether an answer is disengaged: empty, a stock non-answer, or too short to use."""
    if isinstance(answer, list):
        return not any(item.strip() for item in answer)

    text = _normalize_text(answer)
    if template and text in {_normalize_text(option) for option in template.options}:
        return False

    stripped = text.translate(_PUNCTUATION).strip()
    if not stripped:
        return True
    if stripped in VAGUE_PHRASES:
        return True
    return len(re.sub(r"\W", "", stripped)) < MIN_FREE_TEXT_LENGTH


def is_negative_mood(mood: str | None) -> bool:
    if not mood:
        return False
    text = mood.casefold()
    return any(marker in text for marker in NEGATIVE_MOOD_MARKERS)


def is_with_kids(company: str | None) -> bool:
    if not company:
        return False
    text = company.casefold()
    return any(marker in text for marker in KIDS_MARKERS)


def intense_genres(genres: list[str]) -> list[str]:
    """Genres that clash with a rough-day mood."""
    return [g for g in genres if any(marker in g.casefold() for marker in INTENSE_GENRES)]


def wants_mature_content(genres: list[str], age_rating: str | None) -> bool:
    """Whether the answers ask for content unsuitable for kids."""
    if age_rating:
        text = age_rating.casefold()
        if "mature" in text or "adult" in text:
            return True
    return any(any(marker in g.casefold() for marker in MATURE_GENRES) for g in genres)


AFFIRMATIVE_MARKERS = ("yes", "sure", "ok", "please", "light", "family friendly")


def is_affirmative(answer: str, template: QuestionTemplate) -> bool:
    """Whether a clarification answer accepts the suggested (first) option."""
    text = _normalize_text(answer)
    options = [_normalize_text(option) for option in template.options]
    if text == options[0]:
        return True
    if text in options[1:]:
        return False
    return text.startswith(AFFIRMATIVE_MARKERS) or any(marker in text for marker in AFFIRMATIVE_MARKERS[4:])
