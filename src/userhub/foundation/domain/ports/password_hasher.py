"""Port interface for one-way credential hashing.

This module defines the PasswordHasherPort protocol so the lifecycle
service can hash credentials without coupling to a hashing library or
its cost parameters.

Example:
    >>> from userhub.foundation.domain.ports import PasswordHasherPort
    >>> def store_secret(hasher: PasswordHasherPort, secret: str) -> str:
    ...     return hasher.hash(secret)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PasswordHasherPort(Protocol):
    """Port for one-way password hashing.

    Implementations are expected to be deliberately slow (tunable cost)
    and salted, so equal inputs produce different hashes. Hashing is
    CPU-bound and blocking; async callers should run it off the event loop.

    Example:
        >>> class PlainHasher:
        ...     def hash(self, password: str) -> str:
        ...         return "x" + password
        ...
        ...     def verify(self, password: str, hashed: str) -> bool:
        ...         return hashed == "x" + password
        >>> isinstance(PlainHasher(), PasswordHasherPort)
        True
    """

    def hash(self, password: str) -> str:
        """Hash a plaintext password for storage.

        Args:
            password: The plaintext secret.

        Returns:
            Encoded hash string suitable for persistent storage.
        """
        ...

    def verify(self, password: str, hashed: str) -> bool:
        """Check a plaintext password against a stored hash.

        Args:
            password: The plaintext secret.
            hashed: Hash previously returned by :meth:`hash`.

        Returns:
            True if the password matches, False otherwise.
        """
        ...
