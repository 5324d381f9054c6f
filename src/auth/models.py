"""Authentication-related Pydantic models."""

from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """Identity carried by a verified bearer token."""

    id: str
    email: str | None = None
    role: str | None = None
