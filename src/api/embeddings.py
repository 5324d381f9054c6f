"""Embedding ingestion endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import AuthenticatedUser, get_current_user
from src.db import get_db
from src.models.schemas import EmbeddingIngestRequest, EmbeddingIngestResponse
from src.services.feedback import ingest_embedding
from src.services.llm import LlmClient, get_llm_client

router = APIRouter()


@router.post("", response_model=EmbeddingIngestResponse)
async def ingest_embedding_endpoint(
    data: EmbeddingIngestRequest,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    llm: Annotated[LlmClient, Depends(get_llm_client)],
) -> EmbeddingIngestResponse:
    """Embed a highly rated title for the user. Re-sending a title overwrites it."""
    return await ingest_embedding(
        db,
        llm,
        user.id,
        title=data.title,
        description=data.description,
        rating=data.rating,
    )
