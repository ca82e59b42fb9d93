"""Notifier error hierarchy for event publication failures.

Each subtype states whether the failure is transient (the broker may
recover and a later publish may succeed) or permanent for that message.
"""

from __future__ import annotations

from userhub.foundation.domain.exceptions import PublishError


class NotifierError(PublishError):
    """Base exception for all notifier failures."""

    #: Whether this error type is considered transient (retryable).
    transient: bool = False

    def __init__(self, message: str, routing_key: str | None = None) -> None:
        self.routing_key = routing_key
        context = {"routing_key": routing_key} if routing_key else None
        super().__init__(message, context)


class PublishRejectedError(NotifierError):
    """Raised when the broker negatively acknowledges a message.

    Permanent for that message; the broker refused it.
    """

    error_code: str = "PUBLISH_REJECTED"


class PublishTimeoutError(NotifierError):
    """Raised when no confirmation arrives before the deadline.

    Transient: the message may or may not have been routed.
    """

    error_code: str = "PUBLISH_TIMEOUT"
    transient: bool = True

    def __init__(self, routing_key: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"no confirmation within {timeout}s", routing_key)


class BrokerConnectionError(NotifierError):
    """Raised when the broker connection or channel is unavailable.

    Transient: the robust connection reconnects in the background.
    """

    error_code: str = "BROKER_UNAVAILABLE"
    transient: bool = True
