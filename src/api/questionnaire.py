"""Questionnaire API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.models.schemas import ConversationStepRequest, ConversationStepResponse, QuestionRead
from src.services.llm import LlmClient, get_llm_client
from src.services.questionnaire import QuestionnaireService

router = APIRouter()


def get_questionnaire_service(
    llm: Annotated[LlmClient, Depends(get_llm_client)],
) -> QuestionnaireService:
    return QuestionnaireService(llm)


@router.get("/start", response_model=QuestionRead)
async def start_questionnaire(
    service: Annotated[QuestionnaireService, Depends(get_questionnaire_service)],
) -> QuestionRead:
    """The fixed opening question."""
    return service.start()


@router.post("/next", response_model=ConversationStepResponse)
async def next_step(
    data: ConversationStepRequest,
    service: Annotated[QuestionnaireService, Depends(get_questionnaire_service)],
) -> ConversationStepResponse:
    """Evaluate the conversation so far and decide what happens next.

    Stateless: the caller sends the full history on every step.
    """
    return await service.next_step(data.conversation_history)
