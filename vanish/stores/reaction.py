from neo4j import AsyncManagedTransaction
from pydantic import UUID4

from vanish.db import DatabaseManager
from vanish.models.reaction import Reaction, ReactionAggregate, ReactionKind
from vanish.utils.clock import Clock


class ReactionStore:
    """Store for per-user reactions on messages.

    A reaction is a REACTED relationship between a user and a message, merged
    on that pair. Concurrent writers therefore only contend when they share
    the same user and message, and aggregates are always counted from the
    relationships present at query time.
    """

    def __init__(self, db: DatabaseManager, clock: Clock) -> None:
        self._db = db
        self._clock = clock

    async def upsert(
        self, message_id: UUID4, user_id: UUID4, kind: ReactionKind
    ) -> bool:
        """Create or overwrite a user's reaction to a message.

        Reacting again with the same kind rewrites the same relationship.

        Args:
            message_id: ID of the message
            user_id: ID of the reacting user
            kind: Like or dislike

        Returns:
            True if the reaction was written, False if the message or user
            no longer exists

        Raises:
            StorageUnavailableError: If the store fails
        """
        now = self._clock.now()
        async with self._db.session() as session:
            return await session.execute_write(
                self._upsert_reaction, message_id, user_id, kind, now
            )

    async def _upsert_reaction(
        self,
        tx: AsyncManagedTransaction,
        message_id: UUID4,
        user_id: UUID4,
        kind: ReactionKind,
        now,
    ) -> bool:
        # language=cypher
        query = """
        MATCH (user:User {user_id: $user_id})
        MATCH (msg:Message {message_id: $message_id})
        MERGE (user)-[r:REACTED]->(msg)
        SET r.kind = $kind,
            r.updated_at = $now
        RETURN count(r) AS written
        """
        result = await tx.run(
            query,
            message_id=str(message_id),
            user_id=str(user_id),
            kind=kind.value,
            now=now,
        )
        record = await result.single()
        return bool(record and record["written"])

    async def counts_for(self, message_id: UUID4) -> ReactionAggregate:
        """Count likes and dislikes on a message.

        Args:
            message_id: ID of the message

        Returns:
            Current counts; zero for both when nobody has reacted
        """
        async with self._db.session() as session:
            return await session.execute_read(self._count_reactions, message_id)

    async def _count_reactions(
        self, tx: AsyncManagedTransaction, message_id: UUID4
    ) -> ReactionAggregate:
        # language=cypher
        query = """
        OPTIONAL MATCH (:User)-[r:REACTED]->(:Message {message_id: $message_id})
        RETURN {
            likes: count(CASE WHEN r.kind = 'like' THEN 1 END),
            dislikes: count(CASE WHEN r.kind = 'dislike' THEN 1 END)
        } AS counts
        """
        result = await tx.run(query, message_id=str(message_id))
        if record := await result.single():
            return ReactionAggregate(**record["counts"])
        return ReactionAggregate()

    async def get(self, message_id: UUID4, user_id: UUID4) -> Reaction | None:
        """Get a user's stored reaction to a message.

        Args:
            message_id: ID of the message
            user_id: ID of the user

        Returns:
            The reaction record, or None if the user never reacted
        """
        async with self._db.session() as session:
            return await session.execute_read(self._get_reaction, message_id, user_id)

    async def _get_reaction(
        self, tx: AsyncManagedTransaction, message_id: UUID4, user_id: UUID4
    ) -> Reaction | None:
        # language=cypher
        query = """
        MATCH (user:User {user_id: $user_id})-[r:REACTED]->(msg:Message {message_id: $message_id})
        RETURN {
            message_id: msg.message_id,
            user_id: user.user_id,
            kind: r.kind,
            updated_at: r.updated_at
        } AS reaction
        """
        result = await tx.run(
            query, message_id=str(message_id), user_id=str(user_id)
        )
        if record := await result.single():
            return Reaction(**record["reaction"])
        return None

    async def reaction_of(
        self, message_id: UUID4, user_id: UUID4
    ) -> ReactionKind | None:
        """Get the kind of a user's current reaction to a message, if any."""
        reaction = await self.get(message_id, user_id)
        return reaction.kind if reaction else None
