"""User domain event contract.

Events are JSON documents published to one topic exchange under three
routing keys. Created/updated events carry the full user record without
the credential; deleted events carry the bare identifier as a JSON string.
Consumers can subscribe to all of them with the ``user.*`` binding.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from userhub.domain.user.user import User

EXCHANGE_NAME = "user.events"
QUEUE_NAME = "user"
BINDING_KEY = "user.*"
CONTENT_TYPE = "application/json"


class UserEventKind(StrEnum):
    """Routing key of each user event."""

    CREATED = "user.created"
    UPDATED = "user.updated"
    DELETED = "user.deleted"


def encode_user(user: User) -> bytes:
    """Encode a created/updated event body."""
    return json.dumps(user.to_dict()).encode("utf-8")


def encode_user_id(user_id: str) -> bytes:
    """Encode a deleted event body (quoted JSON string)."""
    return json.dumps(user_id).encode("utf-8")
