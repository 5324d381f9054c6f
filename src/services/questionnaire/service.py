"""Questionnaire service: resolves history entries and runs the state machine."""

from collections.abc import Sequence

from src.models.schemas import ConversationEntry, ConversationStepResponse, QuestionRead
from src.services.llm import LlmClient
from src.services.questionnaire.catalog import Category, find_question, is_vague_answer
from src.services.questionnaire.interpreter import AnswerInterpreter
from src.services.questionnaire.state_machine import (
    AnswerValue,
    QuestionnairePolicy,
    StepState,
    evaluate,
    first_question,
)
from src.utils.logging import get_logger
from src.utils.metrics import metrics

logger = get_logger(__name__)


class QuestionnaireService:
    """Decides the next conversation step for a history."""

    def __init__(self, llm: LlmClient, policy: QuestionnairePolicy | None = None) -> None:
        self.interpreter = AnswerInterpreter(llm)
        self.policy = policy or QuestionnairePolicy.from_settings()

    def start(self) -> QuestionRead:
        """The fixed opening question."""
        return first_question().to_question()

    async def next_step(self, history: Sequence[ConversationEntry]) -> ConversationStepResponse:
        """Evaluate the history and return the next step.

        Raises:
            MalformedResponse: an interpretation came back off-shape; retrying
                with the same history is safe.
            UpstreamUnavailable: the generative provider failed.
        """
        interpretations = await self._interpret_unknown(history)
        outcome = evaluate(history, interpretations, self.policy)

        metrics.questionnaire_steps_total.inc(outcome=outcome.state.value)
        logger.info(
            f"Questionnaire step: {len(history)} answers, state={outcome.state.value}, "
            f"confidence={outcome.confidence}"
        )
        if outcome.state is StepState.READY:
            logger.debug(f"Extracted preferences: {outcome.preferences}")
        return outcome.to_response()

    async def _interpret_unknown(
        self, history: Sequence[ConversationEntry]
    ) -> dict[int, dict[Category, AnswerValue]]:
        interpretations: dict[int, dict[Category, AnswerValue]] = {}
        for idx, entry in enumerate(history):
            if find_question(entry.question_id, entry.question) is not None:
                continue
            if is_vague_answer(entry.answer):
                continue
            raw = await self.interpreter.interpret(entry.question, entry.answer_text)
            interpretations[idx] = {Category(key): value for key, value in raw.items()}
        return interpretations
