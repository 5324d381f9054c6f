"""Authentication module."""

from src.auth.dependencies import decode_token, get_current_user, get_optional_user
from src.auth.models import AuthenticatedUser

__all__ = [
    "AuthenticatedUser",
    "decode_token",
    "get_current_user",
    "get_optional_user",
]
