from datetime import datetime, timedelta

from vanish.models.message import Message
from vanish.models.preference import UserPreference


def reminder_at(message: Message, preference: UserPreference) -> datetime | None:
    """When a reminder for ``message`` should fire under ``preference``.

    Returns:
        The reminder instant, or None if the user turned reminders off
    """
    if not preference.notifications_enabled:
        return None
    return message.expires_at - timedelta(minutes=preference.notify_before_minutes)


def is_reminder_due(
    message: Message, preference: UserPreference, now: datetime
) -> bool:
    """Whether the reminder window for a message is open at ``now``.

    The window runs from the reminder instant up to, but not including, expiry.
    """
    fire_at = reminder_at(message, preference)
    if fire_at is None:
        return False
    return fire_at <= now < message.expires_at
