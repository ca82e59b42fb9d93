"""Userhub Foundation Domain -- pure Python domain primitives.

Identifiers, the domain exception hierarchy, and port interfaces shared
by the domain and infrastructure packages.
"""

from userhub.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    DuplicateEmailError,
    MissingRequiredFieldError,
    NotFoundError,
    PublishError,
    TransientStoreError,
    ValidationError,
)
from userhub.foundation.domain.identifiers import new_user_id
from userhub.foundation.domain.ports import PasswordHasherPort

__all__ = [
    "ConflictError",
    "DomainError",
    "DuplicateEmailError",
    "MissingRequiredFieldError",
    "NotFoundError",
    "PasswordHasherPort",
    "PublishError",
    "TransientStoreError",
    "ValidationError",
    "new_user_id",
]
