"""Identity generation for new entities.

User identifiers are opaque strings assigned by the service. They are
rendered from random (version 4) UUIDs so they are globally unique
without coordination with the store.

Example:
    >>> from userhub.foundation.domain.identifiers import new_user_id
    >>> user_id = new_user_id()
    >>> len(user_id)
    36
"""

from __future__ import annotations

from uuid import uuid4


def new_user_id() -> str:
    """Return a fresh, globally-unique user identifier."""
    return str(uuid4())
