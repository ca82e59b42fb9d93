"""User lifecycle service.

Owns the business rules of the system: validates commands, assigns
identity and timestamps, hashes credentials, coordinates the repository,
and fires domain events.

Event publication is fire-and-forget. Each publish runs as its own
asyncio task with a fresh timeout, so it is not cancelled when the
inbound request is, and its failure is logged instead of surfacing to
the caller. There is no transactional coupling between the write and
the publish: a crash in between leaves the write without an event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from userhub.domain.user.events import UserEventKind
from userhub.domain.user.user import MAX_PAGE_SIZE, User, UserPage
from userhub.foundation.domain.exceptions import (
    DuplicateEmailError,
    MissingRequiredFieldError,
    NotFoundError,
    PublishError,
    ValidationError,
)
from userhub.foundation.domain.identifiers import new_user_id

if TYPE_CHECKING:
    from userhub.domain.user.ports import UserNotifierPort, UserRepositoryPort
    from userhub.domain.user.user import UserDraft, UserFilter, UserUpdate
    from userhub.foundation.domain.ports import PasswordHasherPort

logger = structlog.get_logger(__name__)

DEFAULT_PUBLISH_TIMEOUT = 5.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _blank(value: str | None) -> bool:
    # Emptiness only; whitespace is content (a password may be "   ").
    return not value


class UserService:
    """Create, update, delete, get and list users.

    Args:
        repository: Persistence port.
        notifier: Event publishing port.
        hasher: One-way credential hasher.
        publish_timeout: Seconds each detached publish may take, broker
            confirmation included.
        clock: Source of timestamps (UTC).
        id_factory: Source of new user identifiers.
    """

    def __init__(
        self,
        repository: UserRepositoryPort,
        notifier: UserNotifierPort,
        hasher: PasswordHasherPort,
        *,
        publish_timeout: float = DEFAULT_PUBLISH_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = new_user_id,
    ) -> None:
        self._repo = repository
        self._notifier = notifier
        self._hasher = hasher
        self._publish_timeout = publish_timeout
        self._clock = clock
        self._id_factory = id_factory
        self._pending: set[asyncio.Task[None]] = set()

    # -- Commands -------------------------------------------------------------

    async def create_user(self, draft: UserDraft) -> User:
        """Validate and persist a new user, then publish ``user.created``.

        Returns:
            The stored record, including its assigned id and timestamps.

        Raises:
            MissingRequiredFieldError: Email/password or a name is blank.
            DuplicateEmailError: The email is already taken (pre-check or
                storage constraint).
            TransientStoreError: The store could not be reached.
        """
        if _blank(draft.email) or _blank(draft.password):
            raise MissingRequiredFieldError("email", "password")
        if _blank(draft.first_name) or _blank(draft.last_name):
            raise MissingRequiredFieldError("first_name", "last_name")

        # Racy against concurrent creators; the unique index is the backstop.
        if await self._repo.exists_by_email(draft.email):
            raise DuplicateEmailError(draft.email)

        now = self._clock()
        user = User(
            id=self._id_factory(),
            first_name=draft.first_name,
            last_name=draft.last_name,
            email=draft.email,
            nickname=draft.nickname,
            country=draft.country,
            created_at=now,
            updated_at=now,
        )
        password_hash = await self._hash(draft.password)
        await self._repo.create(user, password_hash)
        logger.info("user_created", user_id=user.id)

        event_record = replace(user)
        self._dispatch(
            UserEventKind.CREATED,
            user.id,
            lambda timeout: self._notifier.user_created(event_record, timeout=timeout),
        )
        return user

    async def update_user(self, update: UserUpdate) -> User:
        """Replace a user's fields, then publish ``user.updated``.

        The credential is re-hashed only when ``update.password`` is given.

        Returns:
            The stored record after the update.

        Raises:
            MissingRequiredFieldError: Email, a name, or an explicit empty
                password is blank.
            NotFoundError: No user has ``update.id``.
            DuplicateEmailError: The new email belongs to another user.
            TransientStoreError: The store could not be reached.
        """
        if _blank(update.email):
            raise MissingRequiredFieldError("email")
        if _blank(update.first_name) or _blank(update.last_name):
            raise MissingRequiredFieldError("first_name", "last_name")
        if update.password is not None and _blank(update.password):
            raise MissingRequiredFieldError("password")

        password_hash = None
        if update.password is not None:
            password_hash = await self._hash(update.password)

        now = self._clock()
        changes = User(
            id=update.id,
            first_name=update.first_name,
            last_name=update.last_name,
            email=update.email,
            nickname=update.nickname,
            country=update.country,
            # Ignored by the repository; the stored value is kept.
            created_at=now,
            updated_at=now,
        )
        stored = await self._repo.update(changes, password_hash)
        if stored is None:
            raise NotFoundError("User", update.id)
        logger.info(
            "user_updated",
            user_id=stored.id,
            password_changed=password_hash is not None,
        )

        event_record = replace(stored)
        self._dispatch(
            UserEventKind.UPDATED,
            stored.id,
            lambda timeout: self._notifier.user_updated(event_record, timeout=timeout),
        )
        return stored

    async def delete_user(self, user_id: str) -> None:
        """Hard-delete a user, then publish ``user.deleted``.

        The event is only dispatched after the delete succeeded.

        Raises:
            NotFoundError: No user has ``user_id``.
            TransientStoreError: The store could not be reached.
        """
        if not await self._repo.delete_by_id(user_id):
            raise NotFoundError("User", user_id)
        logger.info("user_deleted", user_id=user_id)

        self._dispatch(
            UserEventKind.DELETED,
            user_id,
            lambda timeout: self._notifier.user_deleted(user_id, timeout=timeout),
        )

    # -- Queries --------------------------------------------------------------

    async def get_user(self, user_id: str) -> User:
        """Fetch a user by id. The credential is never part of the result.

        Raises:
            NotFoundError: No user has ``user_id``.
        """
        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def list_users(self, user_filter: UserFilter) -> UserPage:
        """List users matching all non-empty criteria, one page at a time.

        Raises:
            ValidationError: ``page`` is below 1, or ``page_size`` is outside
                ``1..MAX_PAGE_SIZE``.
        """
        if user_filter.page < 1:
            raise ValidationError("page", "must be >= 1", page=user_filter.page)
        if not 1 <= user_filter.page_size <= MAX_PAGE_SIZE:
            raise ValidationError(
                "page_size",
                f"must be between 1 and {MAX_PAGE_SIZE}",
                page_size=user_filter.page_size,
            )
        users, total = await self._repo.list_users(user_filter)
        return UserPage(
            users=users,
            total=total,
            page=user_filter.page,
            page_size=user_filter.page_size,
        )

    # -- Detached publishing --------------------------------------------------

    @property
    def pending_publishes(self) -> int:
        """Number of publish tasks still in flight."""
        return len(self._pending)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight publish tasks, e.g. before closing the broker.

        Tasks still running after ``timeout`` are cancelled.
        """
        if not self._pending:
            return
        pending = set(self._pending)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if not still_running:
            return
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)
        logger.warning("user_event_drain_timeout", cancelled=len(still_running))

    async def _hash(self, password: str) -> str:
        # Deliberately slow; keep it off the event loop.
        return await asyncio.to_thread(self._hasher.hash, password)

    def _dispatch(
        self,
        kind: UserEventKind,
        user_id: str,
        publish: Callable[[float], Awaitable[None]],
    ) -> None:
        task = asyncio.create_task(
            self._publish(kind, user_id, publish),
            name=f"publish:{kind}:{user_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(
        self,
        kind: UserEventKind,
        user_id: str,
        publish: Callable[[float], Awaitable[None]],
    ) -> None:
        log = logger.bind(event_kind=str(kind), user_id=user_id)
        try:
            await asyncio.wait_for(publish(self._publish_timeout), self._publish_timeout)
        except TimeoutError:
            log.warning(
                "user_event_publish_failed",
                error=f"no confirmation within {self._publish_timeout}s",
            )
        except PublishError as exc:
            log.warning("user_event_publish_failed", error=str(exc))
        except asyncio.CancelledError:
            log.warning("user_event_publish_cancelled")
            raise
        except Exception:
            log.exception("user_event_publish_error")
        else:
            log.debug("user_event_published")
