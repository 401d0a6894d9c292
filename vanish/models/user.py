from datetime import datetime

from pydantic import UUID4, BaseModel, ConfigDict, EmailStr, field_validator

from vanish.utils.neo4j_types import to_native_datetime


class User(BaseModel):
    """User model representing a signed-in user.

    Attributes:
        user_id: Unique identifier for the user
        auth_id: Stable identifier supplied by the identity provider
        name: Display name, if the provider shared one
        email: Email address, if the provider shared one
        created_at: When the user first signed in
        last_signed_in: When the user most recently signed in
    """

    model_config = ConfigDict(frozen=True)

    user_id: UUID4
    auth_id: str
    name: str | None = None
    email: EmailStr | None = None
    created_at: datetime
    last_signed_in: datetime

    @field_validator("created_at", "last_signed_in", mode="before")
    @classmethod
    def convert_neo4j_datetime(cls, v):
        return to_native_datetime(v)
