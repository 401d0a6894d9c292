import asyncio
import logging

from pydantic import UUID4

from vanish.errors import StorageUnavailableError, UnauthorizedError
from vanish.models.message import EnrichedMessage, Message
from vanish.models.preference import UserPreference
from vanish.models.reaction import ReactionKind, ReactionResult
from vanish.services.reminder import is_reminder_due
from vanish.stores.message import MessageStore
from vanish.stores.preference import PreferenceStore
from vanish.stores.reaction import ReactionStore
from vanish.utils.clock import Clock

log = logging.getLogger("vanish.services.message")


class MessageService:
    """Service orchestrating messages, reactions and reminder preferences.

    The caller's identity is always passed in explicitly; the service never
    looks it up from ambient request state.
    """

    def __init__(
        self,
        message_store: MessageStore,
        reaction_store: ReactionStore,
        preference_store: PreferenceStore,
        clock: Clock,
    ) -> None:
        self._messages = message_store
        self._reactions = reaction_store
        self._preferences = preference_store
        self._clock = clock

    async def post_message(
        self, content: str, author_id: UUID4 | None = None
    ) -> Message:
        """Post a new message, optionally on behalf of a signed-in user.

        Creation and author attachment are two separate writes. If attaching
        the author fails, the message is kept and stays anonymous.

        Args:
            content: The text of the message
            author_id: ID of the signed-in author, if any

        Returns:
            The created message

        Raises:
            ValidationError: If content length is out of range
            StorageUnavailableError: If the message could not be created
        """
        message = await self._messages.create(content)
        if author_id is None:
            return message

        try:
            attached = await self._messages.attach_author(
                message.message_id, author_id
            )
        except StorageUnavailableError as e:
            log.warning(
                f"Message {message.message_id} left anonymous, author attach failed: {e}"
            )
            return message

        if not attached:
            log.warning(
                f"Message {message.message_id} left anonymous, author {author_id} not found"
            )
            return message
        return message.model_copy(update={"author_id": author_id})

    async def list_with_engagement(
        self, viewer_id: UUID4 | None = None
    ) -> list[EnrichedMessage]:
        """List active messages with reaction data for one viewer.

        Args:
            viewer_id: ID of the signed-in viewer, if any

        Returns:
            Active messages, newest first, each with counts and the viewer's
            own reaction
        """
        now = self._clock.now()
        messages = await self._messages.list_active(now)
        return list(
            await asyncio.gather(
                *(self._enrich(message, viewer_id, now) for message in messages)
            )
        )

    async def _enrich(
        self, message: Message, viewer_id: UUID4 | None, now
    ) -> EnrichedMessage:
        counts = await self._reactions.counts_for(message.message_id)
        user_reaction = None
        if viewer_id is not None:
            user_reaction = await self._reactions.reaction_of(
                message.message_id, viewer_id
            )
        return EnrichedMessage(
            **message.model_dump(),
            likes=counts.likes,
            dislikes=counts.dislikes,
            user_reaction=user_reaction,
            remaining_seconds=int(message.time_remaining(now).total_seconds()),
        )

    async def react(
        self, message_id: UUID4, user_id: UUID4 | None, kind: ReactionKind
    ) -> ReactionResult:
        """Like or dislike a message.

        Reacting to a message that was swept in the meantime is not an error;
        the returned counts simply reflect that nothing was stored.

        Args:
            message_id: ID of the message
            user_id: ID of the signed-in user
            kind: Like or dislike

        Returns:
            Fresh counts and the caller's own reaction

        Raises:
            UnauthorizedError: If no user is signed in
        """
        if user_id is None:
            raise UnauthorizedError("You must be signed in to react to messages")

        if not await self._reactions.upsert(message_id, user_id, kind):
            log.info(f"Reaction to {message_id} by {user_id} was not stored")

        counts = await self._reactions.counts_for(message_id)
        user_reaction = await self._reactions.reaction_of(message_id, user_id)
        return ReactionResult(
            likes=counts.likes,
            dislikes=counts.dislikes,
            user_reaction=user_reaction,
        )

    async def remove_message(self, message_id: UUID4 | str) -> bool:
        """Delete a message.

        Returns:
            True if it existed and was removed
        """
        return await self._messages.delete_by_id(message_id)

    async def user_messages(self, user_id: UUID4) -> list[Message]:
        """Get a user's posting history, including expired messages."""
        return await self._messages.list_by_user(user_id)

    async def get_preferences(self, user_id: UUID4) -> UserPreference:
        return await self._preferences.get_or_create(user_id)

    async def update_preferences(
        self, user_id: UUID4, notifications_enabled: bool, notify_before_minutes: int
    ) -> bool:
        """Update the caller's own reminder preferences.

        Raises:
            ValidationError: If notify_before_minutes is outside [5, 1440]
        """
        return await self._preferences.update(
            user_id, notifications_enabled, notify_before_minutes
        )

    async def due_reminders(self, user_id: UUID4) -> list[Message]:
        """Get the user's messages whose reminder window is open right now.

        Args:
            user_id: ID of the author

        Returns:
            Active messages due for a reminder, newest first; empty when the
            user has reminders turned off
        """
        preference = await self._preferences.get_or_create(user_id)
        if not preference.notifications_enabled:
            return []
        messages = await self._messages.list_by_user(user_id)
        now = self._clock.now()
        return [m for m in messages if is_reminder_due(m, preference, now)]
