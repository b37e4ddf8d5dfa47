"""
Bearer-token authentication for the FastAPI API.
Every protected request is verified against the identity provider; nothing is cached.
"""

from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.dependencies import get_identity_provider
from api.errors import InternalError, Unauthenticated
from identity.provider import IdentityError, IdentityProvider, IdentityUnavailable

logger = structlog.get_logger(__name__)

# Missing or malformed headers are reported by verify_user as 401 rather than
# by the scheme itself.
security = HTTPBearer(auto_error=False)


async def verify_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityProvider = Depends(get_identity_provider)
) -> str:
    """
    Verify the bearer token from the request.

    Args:
        credentials: Parsed ``Authorization: Bearer <token>`` header
        identity: Identity provider client

    Returns:
        The authenticated user's id

    Raises:
        Unauthenticated: If the token is missing or rejected
        InternalError: If the identity provider is unavailable
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated(detail="No token provided")

    try:
        return await identity.get_user_id(credentials.credentials)
    except IdentityError as e:
        logger.info("Token rejected", error=str(e))
        raise Unauthenticated(detail=str(e))
    except IdentityUnavailable as e:
        logger.error("Identity provider unavailable", error=str(e))
        raise InternalError("Authentication service unavailable")
