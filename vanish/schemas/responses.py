from pydantic import BaseModel, ConfigDict, Field


class HealthCheckResponseSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool


class SuccessResponse(BaseModel):
    """Outcome of a write whose only result is whether it happened."""

    model_config = ConfigDict(frozen=True)

    success: bool = Field(description="Whether the operation took effect")
