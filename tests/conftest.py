"""Shared fixtures: in-memory collaborators for the user lifecycle service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest
import structlog

from userhub.domain.user.events import UserEventKind
from userhub.domain.user.service import UserService
from userhub.foundation.domain.exceptions import DuplicateEmailError
from userhub.infra.security import BcryptPasswordHasher

if TYPE_CHECKING:
    from userhub.domain.user.user import User, UserFilter


class InMemoryUserRepository:
    """Dict-backed repository honouring the repository contract.

    Email uniqueness is enforced like the storage index, and every call
    is recorded in ``calls`` so tests can assert what the service did.
    """

    def __init__(self) -> None:
        self.rows: dict[str, tuple[User, str]] = {}
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _email_taken(self, email: str, *, except_id: str | None = None) -> bool:
        return any(u.email == email and u.id != except_id for u, _ in self.rows.values())

    def password_hash_of(self, user_id: str) -> str:
        return self.rows[user_id][1]

    async def create(self, user: User, password_hash: str) -> None:
        self._enter("create")
        if self._email_taken(user.email):
            raise DuplicateEmailError(user.email)
        self.rows[user.id] = (replace(user), password_hash)

    async def update(self, user: User, password_hash: str | None = None) -> User | None:
        self._enter("update")
        existing = self.rows.get(user.id)
        if existing is None:
            return None
        if self._email_taken(user.email, except_id=user.id):
            raise DuplicateEmailError(user.email)
        old, old_hash = existing
        stored = replace(
            user,
            created_at=old.created_at,
            updated_at=max(old.created_at, old.updated_at, user.updated_at),
        )
        self.rows[user.id] = (stored, password_hash if password_hash is not None else old_hash)
        return replace(stored)

    async def delete_by_id(self, user_id: str) -> bool:
        self._enter("delete_by_id")
        return self.rows.pop(user_id, None) is not None

    async def get_by_id(self, user_id: str) -> User | None:
        self._enter("get_by_id")
        row = self.rows.get(user_id)
        return None if row is None else replace(row[0])

    async def list_users(self, user_filter: UserFilter) -> tuple[list[User], int]:
        self._enter("list_users")
        criteria = user_filter.criteria()
        ordered = sorted((u for u, _ in self.rows.values()), key=lambda u: (u.created_at, u.id))
        matches = [u for u in ordered if all(getattr(u, k) == v for k, v in criteria.items())]
        window = matches[user_filter.skip : user_filter.skip + user_filter.limit]
        return [replace(u) for u in window], len(matches)

    async def exists_by_email(self, email: str) -> bool:
        self._enter("exists_by_email")
        return self._email_taken(email)


@dataclass
class PublishedEvent:
    kind: UserEventKind
    payload: Any
    timeout: float | None


@dataclass
class RecordingNotifier:
    """Notifier double recording every publish.

    ``fail_with`` makes every publish raise; ``delay`` makes it slow.
    """

    events: list[PublishedEvent] = field(default_factory=list)
    fail_with: Exception | None = None
    delay: float = 0.0

    async def _record(self, kind: UserEventKind, payload: Any, timeout: float | None) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append(PublishedEvent(kind, payload, timeout))

    async def user_created(self, user: User, *, timeout: float | None = None) -> None:
        await self._record(UserEventKind.CREATED, user, timeout)

    async def user_updated(self, user: User, *, timeout: float | None = None) -> None:
        await self._record(UserEventKind.UPDATED, user, timeout)

    async def user_deleted(self, user_id: str, *, timeout: float | None = None) -> None:
        await self._record(UserEventKind.DELETED, user_id, timeout)

    def of_kind(self, kind: UserEventKind) -> list[PublishedEvent]:
        return [e for e in self.events if e.kind == kind]


class TickingClock:
    """Clock advancing one second per call, starting at a fixed UTC instant."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        current = self._now
        self._now += timedelta(seconds=1)
        return current


@pytest.fixture()
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def hasher() -> BcryptPasswordHasher:
    """Real bcrypt at the minimum cost, fast enough for unit tests."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def service(
    repository: InMemoryUserRepository,
    notifier: RecordingNotifier,
    hasher: BcryptPasswordHasher,
    clock: TickingClock,
) -> UserService:
    return UserService(repository, notifier, hasher, publish_timeout=1.0, clock=clock)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Any:
    """Undo any structlog configuration a test installed."""
    yield
    structlog.reset_defaults()
