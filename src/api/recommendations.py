"""Recommendations API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import AuthenticatedUser, get_current_user, get_optional_user
from src.constants import HISTORY_PAGE_SIZE
from src.db import get_db
from src.db.crud import get_recent_recommendations
from src.models.schemas import (
    FeedbackResponse,
    RatedItemRead,
    RateRequest,
    RecommendationRequest,
    RecommendationsResponse,
    WatchedRequest,
)
from src.services.feedback import EmbeddingWorker, FeedbackService, get_embedding_worker
from src.services.llm import LlmClient, get_llm_client
from src.services.recommendations import RecommendationEngine

router = APIRouter()


def get_feedback_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    worker: Annotated[EmbeddingWorker, Depends(get_embedding_worker)],
) -> FeedbackService:
    return FeedbackService(db, worker)


@router.post("", response_model=RecommendationsResponse)
async def create_recommendations_endpoint(
    data: RecommendationRequest,
    user: Annotated[AuthenticatedUser | None, Depends(get_optional_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    llm: Annotated[LlmClient, Depends(get_llm_client)],
) -> RecommendationsResponse:
    """Generate a batch of recommendations.

    Anonymous callers get stateless recommendations; authenticated callers
    also get history-aware ones, and the batch is saved for feedback.
    """
    engine = RecommendationEngine(db, llm)
    records = await engine.recommend(data, user)
    return RecommendationsResponse(recommendations=records)


@router.get("/history", response_model=list[RatedItemRead])
async def recommendation_history(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=HISTORY_PAGE_SIZE)] = HISTORY_PAGE_SIZE,
) -> list[RatedItemRead]:
    """Most recent recommendations shown to the user, with their feedback."""
    items = await get_recent_recommendations(db, user.id, limit=limit)
    return [RatedItemRead.model_validate(item) for item in items]


@router.post("/{recommendation_id}/rate", response_model=FeedbackResponse)
async def rate_recommendation(
    recommendation_id: uuid.UUID,
    data: RateRequest,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    service: Annotated[FeedbackService, Depends(get_feedback_service)],
) -> FeedbackResponse:
    """Rate a recommendation 1-5."""
    return await service.rate(user.id, recommendation_id, data.rating)


@router.post("/{recommendation_id}/watched", response_model=FeedbackResponse)
async def mark_watched(
    recommendation_id: uuid.UUID,
    data: WatchedRequest,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    service: Annotated[FeedbackService, Depends(get_feedback_service)],
) -> FeedbackResponse:
    """Mark a recommendation watched; liked=false also forces a 1-star rating."""
    return await service.mark_watched(user.id, recommendation_id, data.watched, data.liked)
