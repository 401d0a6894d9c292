from datetime import datetime
from uuid import uuid4

from neo4j import AsyncManagedTransaction
from pydantic import UUID4

from vanish.db import DatabaseManager
from vanish.errors import ValidationError
from vanish.models.message import (
    MAX_CONTENT_LENGTH,
    MESSAGE_TTL,
    MIN_CONTENT_LENGTH,
    Message,
)
from vanish.utils.clock import Clock

# Shared projection so every read returns the same record shape.
MESSAGE_PROJECTION = """
{
    message_id: msg.message_id,
    content: msg.content,
    author_id: author.user_id,
    created_at: msg.created_at,
    expires_at: msg.expires_at
}
"""


def validate_content(content: str) -> None:
    """Check a message body against the allowed length.

    Raises:
        ValidationError: If content is empty or longer than the limit
    """
    if len(content) < MIN_CONTENT_LENGTH:
        raise ValidationError("Message content cannot be empty")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Message content cannot exceed {MAX_CONTENT_LENGTH} characters"
        )


class MessageStore:
    """Store for ephemeral message records.

    Every operation that depends on the current time reads the clock once and
    passes that instant into the query, so a single evaluation never mixes
    two different notions of "now".
    """

    def __init__(self, db: DatabaseManager, clock: Clock) -> None:
        self._db = db
        self._clock = clock

    async def create(self, content: str) -> Message:
        """Create a message that expires 24 hours from now.

        Args:
            content: The text of the message

        Returns:
            The stored message including its generated ID

        Raises:
            ValidationError: If content length is out of range
            StorageUnavailableError: If the store fails
        """
        validate_content(content)
        created_at = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_write(
                self._create_message,
                uuid4(),
                content,
                created_at,
            )

    async def _create_message(
        self,
        tx: AsyncManagedTransaction,
        message_id: UUID4,
        content: str,
        created_at,
    ) -> Message:
        # language=cypher
        query = f"""
        CREATE (msg:Message {{
            message_id: $message_id,
            content: $content,
            created_at: $created_at,
            expires_at: $expires_at
        }})
        WITH msg, null AS author
        RETURN {MESSAGE_PROJECTION} AS message
        """
        result = await tx.run(
            query,
            message_id=str(message_id),
            content=content,
            created_at=created_at,
            expires_at=created_at + MESSAGE_TTL,
        )
        if record := await result.single():
            return Message(**record["message"])
        raise ValueError("Failed to create message")

    async def attach_author(self, message_id: UUID4, user_id: UUID4) -> bool:
        """Record a user as the author of an existing message.

        Args:
            message_id: ID of the message
            user_id: ID of the author

        Returns:
            True if both the message and the user existed and were linked
        """
        async with self._db.session() as session:
            return await session.execute_write(
                self._attach_author, message_id, user_id
            )

    async def _attach_author(
        self, tx: AsyncManagedTransaction, message_id: UUID4, user_id: UUID4
    ) -> bool:
        # language=cypher
        query = """
        MATCH (msg:Message {message_id: $message_id})
        MATCH (author:User {user_id: $user_id})
        MERGE (author)-[:POSTED]->(msg)
        RETURN count(*) AS linked
        """
        result = await tx.run(
            query, message_id=str(message_id), user_id=str(user_id)
        )
        record = await result.single()
        return bool(record and record["linked"])

    async def list_active(self, now: datetime | None = None) -> list[Message]:
        """Get every message that has not yet expired.

        Args:
            now: Instant to filter against; read from the clock if omitted

        Returns:
            Messages ordered newest first, ties broken by ID descending
        """
        if now is None:
            now = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_read(self._list_active, now)

    async def _list_active(self, tx: AsyncManagedTransaction, now) -> list[Message]:
        # language=cypher
        query = f"""
        MATCH (msg:Message)
        WHERE msg.expires_at > $now
        OPTIONAL MATCH (author:User)-[:POSTED]->(msg)
        RETURN {MESSAGE_PROJECTION} AS message
        ORDER BY msg.created_at DESC, msg.message_id DESC
        """
        result = await tx.run(query, now=now)
        return [Message(**record["message"]) async for record in result]

    async def list_by_user(self, user_id: UUID4) -> list[Message]:
        """Get all messages a user has posted, expired or not.

        Args:
            user_id: ID of the author

        Returns:
            The user's messages, newest first
        """
        async with self._db.session() as session:
            return await session.execute_read(self._list_by_user, user_id)

    async def _list_by_user(
        self, tx: AsyncManagedTransaction, user_id: UUID4
    ) -> list[Message]:
        # language=cypher
        query = f"""
        MATCH (author:User {{user_id: $user_id}})-[:POSTED]->(msg:Message)
        RETURN {MESSAGE_PROJECTION} AS message
        ORDER BY msg.created_at DESC, msg.message_id DESC
        """
        result = await tx.run(query, user_id=str(user_id))
        return [Message(**record["message"]) async for record in result]

    async def delete_by_id(self, message_id: UUID4 | str) -> bool:
        """Delete a message and its reactions.

        Args:
            message_id: ID of the message to delete, in any form

        Returns:
            True if a message was removed, False if none existed
        """
        async with self._db.session() as session:
            return await session.execute_write(self._delete_by_id, message_id)

    async def _delete_by_id(
        self, tx: AsyncManagedTransaction, message_id: UUID4 | str
    ) -> bool:
        # language=cypher
        query = """
        MATCH (msg:Message {message_id: $message_id})
        DETACH DELETE msg
        RETURN count(*) AS deleted
        """
        result = await tx.run(query, message_id=str(message_id))
        record = await result.single()
        return bool(record and record["deleted"])

    async def delete_expired(self) -> int:
        """Delete every message whose expiry has passed.

        Returns:
            Number of messages removed
        """
        now = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_write(self._delete_expired, now)

    async def _delete_expired(self, tx: AsyncManagedTransaction, now) -> int:
        # language=cypher
        query = """
        MATCH (msg:Message)
        WHERE msg.expires_at <= $now
        DETACH DELETE msg
        RETURN count(*) AS deleted
        """
        result = await tx.run(query, now=now)
        record = await result.single()
        return record["deleted"] if record else 0
