"""Bcrypt password hashing.

Implements the PasswordHasherPort protocol from
userhub.foundation.domain.ports. The service only ever stores the
returned hash; plaintext never leaves the command objects.
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from userhub.foundation.domain.exceptions import ValidationError

# bcrypt only reads the first 72 bytes of its input; longer secrets are refused.
MAX_PASSWORD_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 12


class PasswordHasherSettings(BaseSettings):
    """Hashing cost from ``PASSWORD_BCRYPT_ROUNDS`` (4..31, default 12)."""

    model_config = SettingsConfigDict(
        env_prefix="PASSWORD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bcrypt_rounds: int = Field(
        default=DEFAULT_BCRYPT_ROUNDS,
        ge=4,
        le=31,
        description="bcrypt cost factor (log2 of iterations)",
    )


@lru_cache(maxsize=1)
def get_password_hasher_settings() -> PasswordHasherSettings:
    return PasswordHasherSettings()


class BcryptPasswordHasher:
    """Password hasher implementing PasswordHasherPort.

    Args:
        rounds: bcrypt cost factor. Each increment doubles the work.

    Example:
        >>> hasher = BcryptPasswordHasher(rounds=4)
        >>> hashed = hasher.hash("s3cret")
        >>> hashed.startswith("$2b$04$")
        True
        >>> hasher.verify("s3cret", hashed)
        True
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            msg = f"bcrypt rounds must be between 4 and 31, got {rounds}"
            raise ValueError(msg)
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, password: str) -> str:
        """Hash ``password`` with a fresh salt.

        Raises:
            ValidationError: The password is longer than 72 bytes in UTF-8.
        """
        encoded = self._encode(password)
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Timing-safe check of ``password`` against a stored hash."""
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))

    @staticmethod
    def _encode(password: str) -> bytes:
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                "password",
                f"must be at most {MAX_PASSWORD_BYTES} bytes",
            )
        return encoded
