import logging
from contextlib import asynccontextmanager
from os import environ
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from vanish.api import dashboard, messages
from vanish.db import DatabaseManager
from vanish.dependencies import get_current_user
from vanish.errors import (
    NotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from vanish.logging_config import setup_logging
from vanish.models.user import User
from vanish.schemas.responses import HealthCheckResponseSchema
from vanish.services.auth import AuthService
from vanish.services.message import MessageService
from vanish.services.sweeper import DEFAULT_SWEEP_INTERVAL_SECONDS, ExpirySweeper
from vanish.stores.message import MessageStore
from vanish.stores.preference import PreferenceStore
from vanish.stores.reaction import ReactionStore
from vanish.stores.user import UserStore
from vanish.utils.clock import SystemClock

log = logging.getLogger("vanish.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    this_db = DatabaseManager()
    await this_db.verify_connectivity()
    await this_db.ensure_schema()

    clock = SystemClock()
    message_store = MessageStore(this_db, clock)
    app.state.message_service = MessageService(
        message_store,
        ReactionStore(this_db, clock),
        PreferenceStore(this_db, clock),
        clock,
    )
    app.state.auth_service = AuthService(UserStore(this_db, clock))

    sweeper = ExpirySweeper(
        message_store,
        interval=float(
            environ.get("SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)
        ),
    )
    sweeper.start()
    app.state.sweeper = sweeper
    yield
    await sweeper.stop()
    await this_db.close()


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


async def unauthorized_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def not_found_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Storage details stay in the logs.
    log.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Service temporarily unavailable"},
    )


def create_app() -> FastAPI:
    """Build the application with its routers and error mapping."""
    app = FastAPI(title="Vanishing Notes", lifespan=lifespan)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(StorageUnavailableError, storage_error_handler)

    app.include_router(messages.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")

    @app.get("/api/health", response_model=HealthCheckResponseSchema)
    async def health_check() -> HealthCheckResponseSchema:
        return HealthCheckResponseSchema(success=True)

    @app.get("/api/me", response_model=User)
    async def get_current_user_profile(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        """Get the current user's profile.

        This is a protected endpoint that requires authentication.
        The user is resolved from the bearer token.

        Args:
            current_user: Injected by the auth dependency

        Returns:
            The current user's profile
        """
        return current_user

    return app


app = create_app()
