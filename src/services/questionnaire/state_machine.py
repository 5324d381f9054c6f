"""Conversation state machine for the preference questionnaire.

The machine is a pure function of the answered history: every step replays
the whole history, so the same history always yields the same outcome and
an answer is never counted twice.
"""

import enum
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from src.config import get_settings
from src.constants import MAX_GENRE_LENGTH, MAX_GENRES, MAX_PREFERENCE_TEXT_LENGTH
from src.models.schemas import (
    ConversationEntry,
    ConversationStepResponse,
    PreferenceSet,
    normalize_genres,
)
from src.services.questionnaire.catalog import (
    ASK_ORDER,
    CLASSICS_DEFAULTS,
    FALLBACK_CLASSICS,
    FAMILY_FILL_GENRES,
    GENRES_PARTIAL_WEIGHT,
    GENRES_WEIGHT,
    INTENSITY_CHECK,
    LIGHT_FILL_GENRES,
    MATURITY_CHECK,
    MIN_GENRES,
    MOOD_QUESTION,
    OPTIONAL_CATEGORIES,
    OPTIONAL_WEIGHT,
    REQUIRED_CATEGORIES,
    REQUIRED_WEIGHT,
    SIMPLE_QUESTIONS,
    Category,
    QuestionTemplate,
    find_question,
    intense_genres,
    is_affirmative,
    is_negative_mood,
    is_vague_answer,
    is_with_kids,
    question_for,
    wants_mature_content,
)

AnswerValue = str | list[str]

# Number of vague answers after which the classics shortcut is offered
VAGUE_ANSWERS_BEFORE_FALLBACK = 2

MESSAGE_SIMPLER = "No worries, let's try an easier one."
MESSAGE_FALLBACK = (
    "It sounds like you're not sure what you're in the mood for. "
    "We can start fresh, or just show you some popular classics."
)
MESSAGE_INTENSITY = "Just checking before we pick: a rough day and intense genres don't always mix."
MESSAGE_MATURITY = "Quick check so everyone can enjoy what we pick."


class StepState(str, enum.Enum):
    GATHERING = "gathering"
    NEEDS_CLARIFICATION = "needs_clarification"
    READY = "ready"


@dataclass(frozen=True)
class QuestionnairePolicy:
    """Tunable readiness policy."""

    ready_threshold: int = 90
    min_questions: int = 7
    max_questions: int = 13

    @classmethod
    def from_settings(cls) -> "QuestionnairePolicy":
        settings = get_settings()
        return cls(
            ready_threshold=settings.questionnaire_ready_threshold,
            min_questions=settings.questionnaire_min_questions,
            max_questions=settings.questionnaire_max_questions,
        )


@dataclass(frozen=True)
class StepOutcome:
    """Result of evaluating a conversation history."""

    state: StepState
    confidence: int
    message: str | None = None
    next_question: QuestionTemplate | None = None
    preferences: PreferenceSet | None = None

    def to_response(self) -> ConversationStepResponse:
        return ConversationStepResponse(
            ready=self.state is StepState.READY,
            confidence=self.confidence,
            needs_clarification=self.state is StepState.NEEDS_CLARIFICATION,
            message=self.message,
            next_question=self.next_question.to_question() if self.next_question else None,
            preferences=self.preferences,
        )


def category_credit(category: Category, value: AnswerValue) -> int:
    """Confidence credit earned by one answered category."""
    if category is Category.GENRES:
        count = len(normalize_genres(value))
        if count >= MIN_GENRES:
            return GENRES_WEIGHT
        return GENRES_PARTIAL_WEIGHT if count else 0
    if category in OPTIONAL_CATEGORIES:
        return OPTIONAL_WEIGHT
    return REQUIRED_WEIGHT


@dataclass
class ConversationState:
    """Accumulated answers while replaying a history."""

    answers: dict[Category, AnswerValue] = field(default_factory=dict)
    credits: dict[Category, int] = field(default_factory=dict)
    answered_count: int = 0
    vague_count: int = 0
    fallback_offered: bool = False
    fallback_accepted: bool = False
    intensity_resolved: bool = False
    maturity_resolved: bool = False

    # Last-entry facts used to decide the response
    last_vague_category: Category | None = None
    last_was_vague: bool = False

    @property
    def genres(self) -> list[str]:
        return normalize_genres(self.answers.get(Category.GENRES))

    @property
    def confidence(self) -> int:
        return min(100, sum(self.credits.values()))

    def text(self, category: Category) -> str | None:
        value = self.answers.get(category)
        if value is None:
            return None
        return ", ".join(value) if isinstance(value, list) else value

    def is_covered(self, category: Category) -> bool:
        if category is Category.GENRES:
            return len(self.genres) >= MIN_GENRES
        return bool(self.text(category))

    @property
    def missing_required(self) -> list[Category]:
        return [c for c in REQUIRED_CATEGORIES if not self.is_covered(c)]

    def record(self, category: Category, value: AnswerValue) -> None:
        if category is Category.GENRES:
            # Genres accumulate across answers, first spelling kept
            merged = list(self.genres)
            seen = {g.casefold() for g in merged}
            for genre in normalize_genres(value):
                if genre.casefold() not in seen:
                    seen.add(genre.casefold())
                    merged.append(genre)
            value = merged
            if not value:
                return
        elif isinstance(value, list):
            value = ", ".join(v.strip() for v in value if v.strip())
        else:
            value = value.strip()
        if not value:
            return
        self.answers[category] = value
        self.credits[category] = max(self.credits.get(category, 0), category_credit(category, value))

    def apply(self, entry: ConversationEntry, interpreted: Mapping[Category, AnswerValue] | None) -> None:
        """Fold one answered question into the state."""
        template = find_question(entry.question_id, entry.question)
        self.last_was_vague = False
        self.last_vague_category = None

        if template is FALLBACK_CLASSICS:
            self.fallback_offered = True
            if is_affirmative(entry.answer_text, template):
                self.fallback_accepted = True
                for category, value in CLASSICS_DEFAULTS.items():
                    if not self.is_covered(category):
                        self.record(category, value)
            return

        if template is INTENSITY_CHECK:
            self.intensity_resolved = True
            if is_affirmative(entry.answer_text, template):
                self._drop_genres(intense_genres(self.genres), LIGHT_FILL_GENRES)
            return

        if template is MATURITY_CHECK:
            self.maturity_resolved = True
            if is_affirmative(entry.answer_text, template):
                self.record(Category.AGE_RATING, "Family friendly")
                self._drop_genres(
                    [g for g in self.genres if wants_mature_content([g], None)], FAMILY_FILL_GENRES
                )
            return

        if template is not None and template.category is not None:
            if is_vague_answer(entry.answer, template):
                self._mark_vague(template.category)
                return
            self.answered_count += 1
            self.record(template.category, entry.answer)
            return

        # Outside the catalog: rely on the interpretation of the answer
        if is_vague_answer(entry.answer) or not interpreted:
            self._mark_vague(None)
            return
        self.answered_count += 1
        for category, value in interpreted.items():
            self.record(category, value)

    def _mark_vague(self, category: Category | None) -> None:
        self.vague_count += 1
        self.last_was_vague = True
        self.last_vague_category = category

    def _drop_genres(self, to_drop: list[str], fill: Sequence[str]) -> None:
        if not to_drop:
            return
        dropped = {g.casefold() for g in to_drop}
        kept = [g for g in self.genres if g.casefold() not in dropped]
        for genre in fill:
            if len(kept) >= MIN_GENRES:
                break
            if genre.casefold() not in {g.casefold() for g in kept}:
                kept.append(genre)
        self.answers[Category.GENRES] = kept

    def pending_contradiction(self) -> QuestionTemplate | None:
        """Clarification question for an unresolved contradiction, if any."""
        if (
            not self.intensity_resolved
            and is_negative_mood(self.text(Category.MOOD))
            and intense_genres(self.genres)
        ):
            return INTENSITY_CHECK
        if (
            not self.maturity_resolved
            and is_with_kids(self.text(Category.COMPANY))
            and wants_mature_content(self.genres, self.text(Category.AGE_RATING))
        ):
            return MATURITY_CHECK
        return None

    def is_ready(self, policy: QuestionnairePolicy) -> bool:
        """Readiness: required coverage, no open contradiction, enough confidence."""
        if self.missing_required or self.pending_contradiction():
            return False
        if self.fallback_accepted:
            return True
        if self.answered_count >= policy.max_questions:
            return True
        all_covered = all(self.is_covered(c) for c in ASK_ORDER)
        if self.answered_count < policy.min_questions and not all_covered:
            return False
        return self.confidence >= policy.ready_threshold

    def next_question(self) -> QuestionTemplate | None:
        negative = is_negative_mood(self.text(Category.MOOD))
        kids = is_with_kids(self.text(Category.COMPANY))
        for category in ASK_ORDER:
            if not self.is_covered(category):
                return question_for(category, negative_mood=negative, with_kids=kids)
        return None

    def to_preferences(self) -> PreferenceSet:
        def clip(category: Category) -> str | None:
            value = self.text(category)
            return value[:MAX_PREFERENCE_TEXT_LENGTH] if value else None

        return PreferenceSet(
            mood=clip(Category.MOOD) or "",
            content_type=clip(Category.CONTENT_TYPE),
            watch_time=clip(Category.WATCH_TIME) or "",
            genres=[g[:MAX_GENRE_LENGTH] for g in self.genres[:MAX_GENRES]],
            company=clip(Category.COMPANY) or "",
            watch_style=clip(Category.WATCH_STYLE) or "",
            language=clip(Category.LANGUAGE) or "",
            underrated=clip(Category.UNDERRATED),
            age_rating=clip(Category.AGE_RATING),
        )


def first_question() -> QuestionTemplate:
    return MOOD_QUESTION


def evaluate(
    history: Sequence[ConversationEntry],
    interpretations: Mapping[int, Mapping[Category, AnswerValue]] | None = None,
    policy: QuestionnairePolicy | None = None,
) -> StepOutcome:
    """Decide the next step for a conversation history.

    Args:
        history: Answered entries, oldest first.
        interpretations: Category values for entries outside the catalog,
            keyed by their position in the history.
        policy: Readiness policy (defaults to configured values).
    """
    policy = policy or QuestionnairePolicy.from_settings()
    interpretations = interpretations or {}

    state = ConversationState()
    ready_snapshot: PreferenceSet | None = None
    for idx, entry in enumerate(history):
        state.apply(entry, interpretations.get(idx))
        # Readiness is sticky: once a prefix was ready, later entries cannot undo it
        if ready_snapshot is None and state.is_ready(policy):
            ready_snapshot = state.to_preferences()

    if ready_snapshot is not None:
        preferences = state.to_preferences() if not state.missing_required else ready_snapshot
        return StepOutcome(StepState.READY, state.confidence, preferences=preferences)

    if state.last_was_vague:
        if state.vague_count >= VAGUE_ANSWERS_BEFORE_FALLBACK and not state.fallback_offered:
            return StepOutcome(
                StepState.NEEDS_CLARIFICATION,
                state.confidence,
                message=MESSAGE_FALLBACK,
                next_question=FALLBACK_CLASSICS,
            )
        category = state.last_vague_category
        if category is None or state.is_covered(category):
            category = next((c for c in ASK_ORDER if not state.is_covered(c)), Category.MOOD)
        return StepOutcome(
            StepState.NEEDS_CLARIFICATION,
            state.confidence,
            message=MESSAGE_SIMPLER,
            next_question=SIMPLE_QUESTIONS[category],
        )

    contradiction = state.pending_contradiction()
    if contradiction is not None:
        message = MESSAGE_INTENSITY if contradiction is INTENSITY_CHECK else MESSAGE_MATURITY
        return StepOutcome(
            StepState.NEEDS_CLARIFICATION,
            state.confidence,
            message=message,
            next_question=contradiction,
        )

    next_question = state.next_question()
    if next_question is None:
        # Everything answered but still below threshold: confirm the genres
        next_question = question_for(Category.GENRES)
    return StepOutcome(StepState.GATHERING, state.confidence, next_question=next_question)
