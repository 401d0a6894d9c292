from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vanish.models.user import User
from vanish.services.auth import (
    AuthService,
    InvalidTokenError,
    TokenExpiredError,
    UserNotFoundError,
)
from vanish.services.message import MessageService

security = HTTPBearer(auto_error=False)


def get_message_service(request: Request) -> MessageService:
    return request.app.state.message_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User | None:
    """Dependency for routes that work with or without a signed-in user.

    A missing Authorization header yields None. A header that is present but
    invalid is still rejected, so a broken session never silently turns a
    user into an anonymous poster.

    Args:
        credentials: The HTTP Authorization header credentials, if sent
        auth_service: Service used to validate the token

    Returns:
        The authenticated user, or None for anonymous callers

    Raises:
        HTTPException: If a token was sent and authentication fails
    """
    if credentials is None:
        return None

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except TokenExpiredError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


async def get_current_user(
    user: Annotated[User | None, Depends(get_optional_user)],
) -> User:
    """Dependency for routes that require a signed-in user.

    Raises:
        HTTPException: If no valid bearer token was supplied
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
