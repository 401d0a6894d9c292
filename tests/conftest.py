import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import pytest
from pydantic import UUID4

from vanish.models.message import MESSAGE_TTL, Message
from vanish.models.preference import UserPreference
from vanish.models.reaction import ReactionAggregate, ReactionKind
from vanish.models.user import User
from vanish.services.message import MessageService
from vanish.stores.message import validate_content
from vanish.stores.preference import validate_notify_before

T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


# Fake neo4j session plumbing for driving a store's transaction functions.
class FakeResult:
    def __init__(self, records: list[dict[str, Any]]) -> None:
        self._records = records

    async def single(self) -> dict[str, Any] | None:
        return self._records[0] if self._records else None

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record


class FakeTransaction:
    """Transaction that answers every query with queued records."""

    def __init__(self) -> None:
        self.responses: list[list[dict[str, Any]]] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def queue(self, *records: dict[str, Any]) -> None:
        self.responses.append(list(records))

    async def run(self, query: str, **params: Any) -> FakeResult:
        self.calls.append((query, params))
        return FakeResult(self.responses.pop(0) if self.responses else [])


class FakeSession:
    def __init__(self, tx: FakeTransaction) -> None:
        self.tx = tx

    async def execute_write(self, fn, *args, **kwargs):
        return await fn(self.tx, *args, **kwargs)

    async def execute_read(self, fn, *args, **kwargs):
        return await fn(self.tx, *args, **kwargs)


class FakeDatabase:
    def __init__(self) -> None:
        self.tx = FakeTransaction()
        self.sessions_opened = 0

    @asynccontextmanager
    async def session(self):
        self.sessions_opened += 1
        yield FakeSession(self.tx)


# In-memory stores with the same contracts as the Neo4j-backed ones.
class InMemoryBackend:
    def __init__(self) -> None:
        self.messages: dict[UUID4, Message] = {}
        self.reactions: dict[tuple[UUID4, UUID4], ReactionKind] = {}
        self.preferences: dict[UUID4, UserPreference] = {}
        self.users: set[UUID4] = set()

    def drop_message(self, message_id: UUID4) -> None:
        del self.messages[message_id]
        for key in [k for k in self.reactions if k[0] == message_id]:
            del self.reactions[key]


class InMemoryMessageStore:
    def __init__(self, backend: InMemoryBackend, clock: FrozenClock) -> None:
        self._backend = backend
        self._clock = clock

    async def create(self, content: str) -> Message:
        validate_content(content)
        now = self._clock.now()
        message = Message(
            message_id=uuid4(),
            content=content,
            created_at=now,
            expires_at=now + MESSAGE_TTL,
        )
        self._backend.messages[message.message_id] = message
        return message

    async def attach_author(self, message_id: UUID4, user_id: UUID4) -> bool:
        message = self._backend.messages.get(message_id)
        if message is None or user_id not in self._backend.users:
            return False
        self._backend.messages[message_id] = message.model_copy(
            update={"author_id": user_id}
        )
        return True

    def _sorted(self, messages) -> list[Message]:
        return sorted(
            messages,
            key=lambda m: (m.created_at, str(m.message_id)),
            reverse=True,
        )

    async def list_active(self, now: datetime | None = None) -> list[Message]:
        if now is None:
            now = self._clock.now()
        return self._sorted(
            m for m in self._backend.messages.values() if m.expires_at > now
        )

    async def list_by_user(self, user_id: UUID4) -> list[Message]:
        return self._sorted(
            m for m in self._backend.messages.values() if m.author_id == user_id
        )

    async def delete_by_id(self, message_id: UUID4 | str) -> bool:
        # Ids are compared in string form, as the database stores them.
        for known in self._backend.messages:
            if str(known) == str(message_id):
                self._backend.drop_message(known)
                return True
        return False

    async def delete_expired(self) -> int:
        now = self._clock.now()
        expired = [
            m.message_id
            for m in self._backend.messages.values()
            if m.expires_at <= now
        ]
        for message_id in expired:
            self._backend.drop_message(message_id)
        return len(expired)


class InMemoryReactionStore:
    def __init__(self, backend: InMemoryBackend) -> None:
        self._backend = backend

    async def upsert(
        self, message_id: UUID4, user_id: UUID4, kind: ReactionKind
    ) -> bool:
        # Yield like a network round trip so concurrent callers interleave.
        await asyncio.sleep(0)
        if message_id not in self._backend.messages:
            return False
        self._backend.reactions[(message_id, user_id)] = kind
        return True

    async def counts_for(self, message_id: UUID4) -> ReactionAggregate:
        await asyncio.sleep(0)
        kinds = [k for (m, _), k in self._backend.reactions.items() if m == message_id]
        return ReactionAggregate(
            likes=kinds.count(ReactionKind.LIKE),
            dislikes=kinds.count(ReactionKind.DISLIKE),
        )

    async def reaction_of(
        self, message_id: UUID4, user_id: UUID4
    ) -> ReactionKind | None:
        return self._backend.reactions.get((message_id, user_id))


class InMemoryPreferenceStore:
    def __init__(self, backend: InMemoryBackend, clock: FrozenClock) -> None:
        self._backend = backend
        self._clock = clock

    async def get_or_create(self, user_id: UUID4) -> UserPreference:
        if user_id not in self._backend.preferences:
            self._backend.preferences[user_id] = UserPreference(
                user_id=user_id, created_at=self._clock.now()
            )
        return self._backend.preferences[user_id]

    async def update(
        self, user_id: UUID4, notifications_enabled: bool, notify_before_minutes: int
    ) -> bool:
        validate_notify_before(notify_before_minutes)
        current = await self.get_or_create(user_id)
        self._backend.preferences[user_id] = current.model_copy(
            update={
                "notifications_enabled": notifications_enabled,
                "notify_before_minutes": notify_before_minutes,
                "updated_at": self._clock.now(),
            }
        )
        return True


# Fixtures
@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def message_store(backend: InMemoryBackend, clock: FrozenClock) -> InMemoryMessageStore:
    return InMemoryMessageStore(backend, clock)


@pytest.fixture
def reaction_store(backend: InMemoryBackend) -> InMemoryReactionStore:
    return InMemoryReactionStore(backend)


@pytest.fixture
def preference_store(
    backend: InMemoryBackend, clock: FrozenClock
) -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore(backend, clock)


@pytest.fixture
def message_service(
    message_store: InMemoryMessageStore,
    reaction_store: InMemoryReactionStore,
    preference_store: InMemoryPreferenceStore,
    clock: FrozenClock,
) -> MessageService:
    return MessageService(message_store, reaction_store, preference_store, clock)


def make_user(backend: InMemoryBackend | None = None, name: str = "Test User") -> User:
    user = User(
        user_id=uuid4(),
        auth_id=f"oauth|{uuid4().hex}",
        name=name,
        email="test@example.com",
        created_at=T0,
        last_signed_in=T0,
    )
    if backend is not None:
        backend.users.add(user.user_id)
    return user


@pytest.fixture
def test_user(backend: InMemoryBackend) -> User:
    return make_user(backend)


@pytest.fixture
def another_test_user(backend: InMemoryBackend) -> User:
    return make_user(backend, name="Another Test User")


@pytest.fixture
def user_factory(backend: InMemoryBackend):
    return lambda: make_user(backend)


