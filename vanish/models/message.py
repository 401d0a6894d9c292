from datetime import datetime, timedelta

from pydantic import UUID4, BaseModel, ConfigDict, Field, field_validator

from vanish.models.reaction import ReactionKind
from vanish.utils.neo4j_types import to_native_datetime

MESSAGE_TTL = timedelta(hours=24)
MIN_CONTENT_LENGTH = 1
MAX_CONTENT_LENGTH = 500


class Message(BaseModel):
    """Model representing an ephemeral note.

    A message is visible while ``now < expires_at`` and is purged once its
    expiry has passed. Content and timestamps never change after creation.

    Attributes:
        message_id: Unique identifier for the message
        content: The text content of the message
        author_id: ID of the user who posted it, None for anonymous posts
        created_at: When the message was created
        expires_at: When the message stops being visible
    """

    model_config = ConfigDict(frozen=True)

    message_id: UUID4
    content: str = Field(min_length=MIN_CONTENT_LENGTH, max_length=MAX_CONTENT_LENGTH)
    author_id: UUID4 | None = None
    created_at: datetime
    expires_at: datetime

    @field_validator("created_at", "expires_at", mode="before")
    @classmethod
    def convert_neo4j_datetime(cls, v):
        return to_native_datetime(v)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def time_remaining(self, now: datetime) -> timedelta:
        """Time left before expiry, never negative."""
        return max(self.expires_at - now, timedelta(0))


class EnrichedMessage(Message):
    """A message together with its reaction data as seen by one viewer.

    Attributes:
        likes: Number of like reactions
        dislikes: Number of dislike reactions
        user_reaction: The viewer's own reaction, if any
        remaining_seconds: Whole seconds left before expiry
    """

    likes: int = 0
    dislikes: int = 0
    user_reaction: ReactionKind | None = None
    remaining_seconds: int = 0
