from uuid import uuid4

from neo4j import AsyncManagedTransaction

from vanish.db import DatabaseManager
from vanish.models.user import User
from vanish.utils.clock import Clock


class UserStore:
    """Store for users known through the identity provider."""

    def __init__(self, db: DatabaseManager, clock: Clock) -> None:
        self._db = db
        self._clock = clock

    async def upsert(
        self, auth_id: str, name: str | None = None, email: str | None = None
    ) -> User:
        """Create a user on first sign-in or refresh an existing one.

        Args:
            auth_id: Stable identifier from the identity provider
            name: Display name, if known
            email: Email address, if known

        Returns:
            The stored user
        """
        now = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_write(
                self._upsert_user, auth_id, name, email, now
            )

    async def _upsert_user(
        self,
        tx: AsyncManagedTransaction,
        auth_id: str,
        name: str | None,
        email: str | None,
        now,
    ) -> User:
        # language=cypher
        query = """
        MERGE (user:User {auth_id: $auth_id})
        ON CREATE
            SET user.user_id = $user_id,
                user.created_at = $now
        SET user.name = coalesce($name, user.name),
            user.email = coalesce($email, user.email),
            user.last_signed_in = $now
        RETURN user {.*} AS user
        """
        result = await tx.run(
            query,
            auth_id=auth_id,
            user_id=str(uuid4()),
            name=name,
            email=email,
            now=now,
        )
        if record := await result.single():
            return User(**record["user"])
        raise ValueError("Failed to upsert user")

    async def get_by_auth_id(self, auth_id: str) -> User | None:
        """Look up a user by their identity provider ID.

        Args:
            auth_id: Stable identifier from the identity provider

        Returns:
            The user, or None if they have never signed in
        """
        async with self._db.session() as session:
            return await session.execute_read(self._get_by_auth_id, auth_id)

    async def _get_by_auth_id(
        self, tx: AsyncManagedTransaction, auth_id: str
    ) -> User | None:
        # language=cypher
        query = """
        MATCH (user:User {auth_id: $auth_id})
        RETURN user {.*} AS user
        """
        result = await tx.run(query, auth_id=auth_id)
        if record := await result.single():
            return User(**record["user"])
        return None
