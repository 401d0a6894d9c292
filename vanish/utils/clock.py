from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant for all expiry arithmetic."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)
