"""
Shared FastAPI dependencies: service access and bearer authentication.
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from skill_translator.services.container import ServiceContainer

security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    """Services built during application startup."""
    return request.app.state.services


async def require_bearer(
    services: Annotated[ServiceContainer, Depends(get_services)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> None:
    """
    Check the static bearer token.

    Authentication is disabled when no token is configured.

    Raises:
        HTTPException: 401 if the header is missing, not Bearer, or wrong
    """
    expected = services.settings.local_api_bearer
    if not expected:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
