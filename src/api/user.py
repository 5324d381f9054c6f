"""User API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import AuthenticatedUser, get_current_user
from src.constants import MAX_WATCHED_TITLE_LENGTH
from src.db import get_db
from src.db.crud import add_watched_show, get_watched_shows, remove_watched_show
from src.errors import NotFound, ValidationError
from src.models.schemas import WatchedShowCreate, WatchedShowRead

router = APIRouter()


@router.get("/watched-shows", response_model=list[WatchedShowRead])
async def list_watched_shows(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[WatchedShowRead]:
    """The user's watched list, newest first."""
    shows = await get_watched_shows(db, user.id)
    return [WatchedShowRead.model_validate(show) for show in shows]


@router.post("/watched-shows", response_model=WatchedShowRead, status_code=201)
async def add_watched_show_endpoint(
    data: WatchedShowCreate,
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WatchedShowRead:
    """Add a title to the watched list. Adding an existing title is a no-op."""
    try:
        show = await add_watched_show(db, user.id, data.title)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return WatchedShowRead.model_validate(show)


@router.delete("/watched-shows", status_code=204)
async def remove_watched_show_endpoint(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    title: Annotated[str, Query(min_length=1, max_length=MAX_WATCHED_TITLE_LENGTH)],
) -> Response:
    """Remove a title from the watched list."""
    if not await remove_watched_show(db, user.id, title):
        raise NotFound("Watched show not found")
    return Response(status_code=204)
