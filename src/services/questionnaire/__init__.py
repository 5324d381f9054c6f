"""Adaptive preference questionnaire."""

from src.services.questionnaire.service import QuestionnaireService
from src.services.questionnaire.state_machine import QuestionnairePolicy, StepOutcome, StepState, evaluate

__all__ = [
    "QuestionnairePolicy",
    "QuestionnaireService",
    "StepOutcome",
    "StepState",
    "evaluate",
]
