"""Request-scoped dependencies: service container and caller identity."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.auth import Identity
from ..errors import UnauthorizedError
from ..services import ServiceContainer

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    """Service container built by the application lifespan."""
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> Identity:
    """Resolve the bearer token to the calling user.

    Raises:
        UnauthorizedError: If the header is missing or the token is rejected
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing bearer token")
    return services.verifier.verify(credentials.credentials)
