from typing import Annotated

from fastapi import APIRouter, Depends

from vanish.dependencies import get_current_user, get_message_service
from vanish.models.message import Message
from vanish.models.preference import UserPreference
from vanish.models.user import User
from vanish.schemas.requests import PreferenceUpdateRequest
from vanish.schemas.responses import SuccessResponse
from vanish.services.message import MessageService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/messages", response_model=list[Message])
async def get_my_messages(
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> list[Message]:
    """Get everything the current user has posted, including expired messages."""
    return await service.user_messages(current_user.user_id)


@router.get("/preferences", response_model=UserPreference)
async def get_preferences(
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserPreference:
    return await service.get_preferences(current_user.user_id)


@router.put("/preferences", response_model=SuccessResponse)
async def update_preferences(
    body: PreferenceUpdateRequest,
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> SuccessResponse:
    """Update the current user's reminder preferences.

    Users can only ever change their own record: the owner is taken from the
    token, never from the request body.
    """
    success = await service.update_preferences(
        current_user.user_id,
        body.notifications_enabled,
        body.notify_before_minutes,
    )
    return SuccessResponse(success=success)


@router.get("/reminders", response_model=list[Message])
async def get_due_reminders(
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> list[Message]:
    """Get the current user's messages that are about to expire."""
    return await service.due_reminders(current_user.user_id)
