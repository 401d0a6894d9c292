from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import UUID4

from vanish.dependencies import get_message_service, get_optional_user
from vanish.models.message import EnrichedMessage, Message
from vanish.models.reaction import ReactionResult
from vanish.models.user import User
from vanish.schemas.requests import MessageCreateRequest, ReactionRequest
from vanish.schemas.responses import SuccessResponse
from vanish.services.message import MessageService

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
async def create_message(
    body: MessageCreateRequest,
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> Message:
    """Post a message that disappears after 24 hours.

    Anonymous posting is allowed; signed-in users are recorded as the author.
    """
    author_id = current_user.user_id if current_user else None
    return await service.post_message(body.content, author_id)


@router.get("", response_model=list[EnrichedMessage])
async def list_messages(
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> list[EnrichedMessage]:
    """List active messages, newest first, with reaction counts."""
    viewer_id = current_user.user_id if current_user else None
    return await service.list_with_engagement(viewer_id)


@router.delete("/{message_id}", response_model=SuccessResponse)
async def delete_message(
    message_id: str,
    service: Annotated[MessageService, Depends(get_message_service)],
) -> SuccessResponse:
    """Delete a message and its reactions.

    Message IDs are opaque here; an unknown or malformed ID reports
    ``success: false`` instead of an error.
    """
    return SuccessResponse(success=await service.remove_message(message_id))


@router.post("/{message_id}/reactions", response_model=ReactionResult)
async def react_to_message(
    message_id: UUID4,
    body: ReactionRequest,
    service: Annotated[MessageService, Depends(get_message_service)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> ReactionResult:
    """Like or dislike a message.

    Args:
        message_id: ID of the message
        body: The reaction kind
        service: The message service
        current_user: The authenticated user; anonymous callers are rejected

    Returns:
        Fresh counts and the caller's own reaction
    """
    user_id = current_user.user_id if current_user else None
    return await service.react(message_id, user_id, body.kind)
