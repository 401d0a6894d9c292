from datetime import datetime

from pydantic import UUID4, BaseModel, ConfigDict, Field, field_validator

from vanish.utils.neo4j_types import to_native_datetime

DEFAULT_NOTIFICATIONS_ENABLED = True
DEFAULT_NOTIFY_BEFORE_MINUTES = 60
MIN_NOTIFY_BEFORE_MINUTES = 5
MAX_NOTIFY_BEFORE_MINUTES = 1440


class UserPreference(BaseModel):
    """Model representing a user's expiration-reminder settings.

    One record exists per user. It is created with defaults the first time
    it is read and is only ever updated in place afterwards.

    Attributes:
        user_id: ID of the owning user
        notifications_enabled: Whether reminders are wanted at all
        notify_before_minutes: How long before expiry to remind
        created_at: When the record was created
        updated_at: When the record was last changed
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID4
    notifications_enabled: bool = DEFAULT_NOTIFICATIONS_ENABLED
    notify_before_minutes: int = Field(
        DEFAULT_NOTIFY_BEFORE_MINUTES,
        ge=MIN_NOTIFY_BEFORE_MINUTES,
        le=MAX_NOTIFY_BEFORE_MINUTES,
    )
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def convert_neo4j_datetime(cls, v):
        return to_native_datetime(v)
