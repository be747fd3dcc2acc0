"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from srm_collab.backend.base import Backend
from srm_collab.core.errors import AuthError
from srm_collab.schemas import ProfileCriteria
from srm_collab.services.session import ClientSession, SessionRegistry

# HTTP Bearer scheme carrying the platform's access token
bearer_scheme = HTTPBearer()


def get_backend(connection: HTTPConnection) -> Backend:
    """Return the application's root backend."""
    return connection.app.state.backend


def get_session_registry(connection: HTTPConnection) -> SessionRegistry:
    """Return the application's open sessions."""
    return connection.app.state.session_registry


BackendDep = Annotated[Backend, Depends(get_backend)]
RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]


async def get_client_session(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    registry: RegistryDep,
) -> ClientSession:
    """Get the session of the user the bearer token belongs to.

    Args:
        credentials: HTTP Bearer token credentials
        registry: Open sessions

    Returns:
        The user's session, opened on first use of the token

    Raises:
        HTTPException: If the token is invalid or expired
    """
    try:
        return await registry.resolve(credentials.credentials)
    except AuthError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


# Type alias for current session dependency
CurrentSessionDep = Annotated[ClientSession, Depends(get_client_session)]


def get_profile_criteria(
    skill: str | None = None,
    interest: str | None = None,
    course: str | None = None,
) -> ProfileCriteria:
    """Collect optional profile predicates from the query string."""
    return ProfileCriteria(skill=skill, interest=interest, course=course)


CriteriaDep = Annotated[ProfileCriteria, Depends(get_profile_criteria)]


def bad_request(err: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))
