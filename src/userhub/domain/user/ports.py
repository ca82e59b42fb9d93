"""Port interfaces the user lifecycle service depends on.

The repository and notifier are implemented in infrastructure
(``userhub.infra.persistence`` and ``userhub.infra.messaging``); the
service only sees these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from userhub.domain.user.user import User, UserFilter


@runtime_checkable
class UserRepositoryPort(Protocol):
    """Persistence contract for users.

    Writes are strictly consistent on the identifier. The store enforces a
    unique index on email independently of any service check and reports
    violations as ``DuplicateEmailError``. Connectivity problems are
    reported as ``TransientStoreError``.
    """

    async def create(self, user: User, password_hash: str) -> None:
        """Insert a new user with its credential hash."""
        ...

    async def update(self, user: User, password_hash: str | None = None) -> User | None:
        """Replace the mutable fields of ``user.id``.

        ``created_at`` is never written. The credential column is only
        written when ``password_hash`` is given.

        Returns:
            The stored record after the update, or None if no user has that id.
        """
        ...

    async def delete_by_id(self, user_id: str) -> bool:
        """Hard-delete a user. Returns False when nothing was deleted."""
        ...

    async def get_by_id(self, user_id: str) -> User | None:
        """Fetch one user without its credential, or None."""
        ...

    async def list_users(self, user_filter: UserFilter) -> tuple[list[User], int]:
        """Return the requested window and the total count matching the criteria."""
        ...

    async def exists_by_email(self, email: str) -> bool:
        """Return True when a user with this exact email exists."""
        ...


@runtime_checkable
class UserNotifierPort(Protocol):
    """Publish contract for user domain events.

    Each call waits for a broker-level confirmation and raises a
    ``NotifierError`` subtype when the broker rejects the message or the
    timeout elapses first.
    """

    async def user_created(self, user: User, *, timeout: float | None = None) -> None: ...

    async def user_updated(self, user: User, *, timeout: float | None = None) -> None: ...

    async def user_deleted(self, user_id: str, *, timeout: float | None = None) -> None: ...
