"""Userhub Infra Security -- credential hashing."""

from userhub.infra.security.password_hasher import (
    BcryptPasswordHasher,
    PasswordHasherSettings,
    get_password_hasher_settings,
)

__all__ = [
    "BcryptPasswordHasher",
    "PasswordHasherSettings",
    "get_password_hasher_settings",
]
