"""Main API router."""

from fastapi import APIRouter

from src.api.embeddings import router as embeddings_router
from src.api.questionnaire import router as questionnaire_router
from src.api.recommendations import router as recommendations_router
from src.api.user import router as user_router

api_router = APIRouter(prefix="/api")

api_router.include_router(questionnaire_router, prefix="/questionnaire", tags=["questionnaire"])
api_router.include_router(recommendations_router, prefix="/recommendations", tags=["recommendations"])
api_router.include_router(embeddings_router, prefix="/embeddings", tags=["embeddings"])
api_router.include_router(user_router, prefix="/user", tags=["user"])
