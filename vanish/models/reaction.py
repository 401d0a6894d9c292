from datetime import datetime
from enum import Enum

from pydantic import UUID4, BaseModel, ConfigDict, field_validator

from vanish.utils.neo4j_types import to_native_datetime


class ReactionKind(str, Enum):
    """Kinds of reaction a user can leave on a message.

    Attributes:
        LIKE: A positive vote
        DISLIKE: A negative vote
    """

    LIKE = "like"
    DISLIKE = "dislike"


class Reaction(BaseModel):
    """Model representing one user's reaction to a message.

    At most one reaction exists per (message, user) pair; reacting again
    overwrites it in place.

    Attributes:
        message_id: ID of the message being reacted to
        user_id: ID of the reacting user
        kind: Like or dislike
        updated_at: When the reaction was last written
    """

    model_config = ConfigDict(frozen=True)

    message_id: UUID4
    user_id: UUID4
    kind: ReactionKind
    updated_at: datetime

    @field_validator("updated_at", mode="before")
    @classmethod
    def convert_neo4j_datetime(cls, v):
        return to_native_datetime(v)


class ReactionAggregate(BaseModel):
    """Reaction counts for a message, computed at query time."""

    model_config = ConfigDict(frozen=True)

    likes: int = 0
    dislikes: int = 0


class ReactionResult(ReactionAggregate):
    """Aggregates returned to a user right after they react."""

    user_reaction: ReactionKind | None = None
