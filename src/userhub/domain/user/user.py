"""User data model.

``User`` is the read shape of the entity: it never carries the credential.
Plaintext passwords only exist on the command objects (``UserDraft``,
``UserUpdate``) and are replaced by a hash inside the service before
anything reaches the repository.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class User:
    """Stored user record, credential excluded.

    Attributes:
        id: Opaque identifier assigned by the service, immutable.
        first_name: Required given name.
        last_name: Required family name.
        email: Required, unique across all users.
        nickname: Optional, empty when unset.
        country: Optional, empty when unset.
        created_at: Set once at creation.
        updated_at: Refreshed on every mutation; never moves backwards, never
            before ``created_at``.
    """

    id: str
    first_name: str
    last_name: str
    email: str
    created_at: datetime
    updated_at: datetime
    nickname: str = ""
    country: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (timestamps as ISO 8601)."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "nickname": self.nickname,
            "email": self.email,
            "country": self.country,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class UserDraft:
    """Command input for creating a user."""

    first_name: str
    last_name: str
    email: str
    password: str = field(repr=False)
    nickname: str = ""
    country: str = ""


@dataclass(frozen=True)
class UserUpdate:
    """Command input for replacing a user's fields.

    ``password=None`` means the credential is left unchanged.
    """

    id: str
    first_name: str
    last_name: str
    email: str
    nickname: str = ""
    country: str = ""
    password: str | None = field(default=None, repr=False)


@dataclass(frozen=True)
class UserFilter:
    """Equality criteria and 1-based pagination for listing users.

    Empty or ``None`` criteria do not constrain the result.
    """

    first_name: str | None = None
    last_name: str | None = None
    country: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def criteria(self) -> dict[str, str]:
        """Return the non-empty equality criteria keyed by column name."""
        candidates = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "country": self.country,
        }
        return {key: value for key, value in candidates.items() if value}

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


@dataclass(frozen=True)
class UserPage:
    """One page of users plus the total count matching the filter."""

    users: list[User]
    total: int
    page: int
    page_size: int

    @property
    def page_count(self) -> int:
        if self.total == 0:
            return 0
        return -(-self.total // self.page_size)
