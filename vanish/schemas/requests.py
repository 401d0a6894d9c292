from pydantic import BaseModel, ConfigDict, Field

from vanish.models.reaction import ReactionKind


class MessageCreateRequest(BaseModel):
    """Body for posting a message.

    Length is checked by the message store so the error text is the same
    whichever entry point is used.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Text of the message")


class ReactionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ReactionKind = Field(description="Like or dislike")


class PreferenceUpdateRequest(BaseModel):
    """Body for updating reminder preferences.

    Attributes:
        notifications_enabled: Whether reminders are wanted
        notify_before_minutes: Lead time before expiry, checked by the store
    """

    model_config = ConfigDict(frozen=True)

    notifications_enabled: bool
    notify_before_minutes: int
