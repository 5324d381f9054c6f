"""Authentication dependencies for FastAPI.

Bearer tokens are HS256 JWTs issued by the identity provider; the `sub`
claim is the user id.
"""

from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.auth.models import AuthenticatedUser
from src.config import get_settings
from src.errors import AuthError
from src.utils.logging import get_logger

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> AuthenticatedUser:
    """Verify a bearer token and return the identity it carries."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Invalid token: {e}") from e

    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Token has no subject")

    return AuthenticatedUser(id=str(user_id), email=payload.get("email"), role=payload.get("role"))


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthenticatedUser | None:
    """Get current user from the bearer token, or None when anonymous."""
    if not credentials:
        return None
    try:
        return decode_token(credentials.credentials)
    except AuthError as e:
        # Treat bad tokens as anonymous on endpoints that allow it
        logger.debug(f"Ignoring bearer token: {e.message}")
        return None


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthenticatedUser:
    """Get current user, raising 401 if not authenticated."""
    if not credentials:
        raise AuthError("Not authenticated")
    return decode_token(credentials.credentials)
