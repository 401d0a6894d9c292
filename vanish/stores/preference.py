import logging

from neo4j import AsyncManagedTransaction
from neo4j.exceptions import ConstraintError
from pydantic import UUID4

from vanish.db import DatabaseManager
from vanish.errors import ValidationError
from vanish.models.preference import (
    DEFAULT_NOTIFICATIONS_ENABLED,
    DEFAULT_NOTIFY_BEFORE_MINUTES,
    MAX_NOTIFY_BEFORE_MINUTES,
    MIN_NOTIFY_BEFORE_MINUTES,
    UserPreference,
)
from vanish.utils.clock import Clock

log = logging.getLogger("vanish.stores.preference")


def validate_notify_before(minutes: int) -> None:
    """Check a reminder lead time against the allowed range.

    Raises:
        ValidationError: If minutes is outside [5, 1440]
    """
    if not MIN_NOTIFY_BEFORE_MINUTES <= minutes <= MAX_NOTIFY_BEFORE_MINUTES:
        raise ValidationError(
            f"notify_before_minutes must be between {MIN_NOTIFY_BEFORE_MINUTES} "
            f"and {MAX_NOTIFY_BEFORE_MINUTES}"
        )


class PreferenceStore:
    """Store for per-user notification preferences.

    Records are created lazily with defaults. The uniqueness constraint on
    ``UserPreference.user_id`` backs the get-or-create, so two first reads
    racing each other still end up with a single record.
    """

    def __init__(self, db: DatabaseManager, clock: Clock) -> None:
        self._db = db
        self._clock = clock

    async def get_or_create(self, user_id: UUID4) -> UserPreference:
        """Get a user's preferences, creating the default record if absent.

        Args:
            user_id: ID of the owning user

        Returns:
            The user's preference record
        """
        now = self._clock.now()
        async with self._db.session() as session:
            try:
                return await session.execute_write(
                    self._merge_preference, user_id, now
                )
            except ConstraintError:
                log.debug(f"Preference for {user_id} created concurrently")
                return await session.execute_read(self._get_preference, user_id)

    async def _merge_preference(
        self, tx: AsyncManagedTransaction, user_id: UUID4, now
    ) -> UserPreference:
        # language=cypher
        query = """
        MERGE (pref:UserPreference {user_id: $user_id})
        ON CREATE
            SET pref.notifications_enabled = $enabled,
                pref.notify_before_minutes = $notify_before,
                pref.created_at = $now
        RETURN pref {.*} AS preference
        """
        result = await tx.run(
            query,
            user_id=str(user_id),
            enabled=DEFAULT_NOTIFICATIONS_ENABLED,
            notify_before=DEFAULT_NOTIFY_BEFORE_MINUTES,
            now=now,
        )
        if record := await result.single():
            return UserPreference(**record["preference"])
        raise ValueError("Failed to create preferences")

    async def _get_preference(
        self, tx: AsyncManagedTransaction, user_id: UUID4
    ) -> UserPreference:
        # language=cypher
        query = """
        MATCH (pref:UserPreference {user_id: $user_id})
        RETURN pref {.*} AS preference
        """
        result = await tx.run(query, user_id=str(user_id))
        if record := await result.single():
            return UserPreference(**record["preference"])
        raise ValueError("Preferences not found")

    async def update(
        self, user_id: UUID4, notifications_enabled: bool, notify_before_minutes: int
    ) -> bool:
        """Update a user's preferences in place.

        Ownership is checked by the caller; this store trusts ``user_id``.

        Args:
            user_id: ID of the owning user
            notifications_enabled: Whether reminders are wanted
            notify_before_minutes: Lead time before expiry, in [5, 1440]

        Returns:
            True once the record has been written

        Raises:
            ValidationError: If notify_before_minutes is out of range
        """
        validate_notify_before(notify_before_minutes)
        now = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_write(
                self._update_preference,
                user_id,
                notifications_enabled,
                notify_before_minutes,
                now,
            )

    async def _update_preference(
        self,
        tx: AsyncManagedTransaction,
        user_id: UUID4,
        notifications_enabled: bool,
        notify_before_minutes: int,
        now,
    ) -> bool:
        # Merging keeps an update before the first read from being lost.
        # language=cypher
        query = """
        MERGE (pref:UserPreference {user_id: $user_id})
        ON CREATE
            SET pref.created_at = $now
        SET pref.notifications_enabled = $enabled,
            pref.notify_before_minutes = $notify_before,
            pref.updated_at = $now
        RETURN count(pref) AS written
        """
        result = await tx.run(
            query,
            user_id=str(user_id),
            enabled=notifications_enabled,
            notify_before=notify_before_minutes,
            now=now,
        )
        record = await result.single()
        return bool(record and record["written"])
