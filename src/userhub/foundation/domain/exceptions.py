"""Domain exception hierarchy for type-safe error handling.

Every error the user lifecycle service surfaces to a caller derives from
:class:`DomainError` and carries a machine-readable ``error_code`` plus a
structured ``context`` used by the transport layer and by logging.

Example:
    >>> from userhub.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("User", "550e8400-e29b-41d4-a716-446655440000")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConflictError",
    "DomainError",
    "DuplicateEmailError",
    "MissingRequiredFieldError",
    "NotFoundError",
    "PublishError",
    "TransientStoreError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (ids, field names).

    Example:
        >>> raise DomainError("Operation failed", context={"user_id": "123"})
        DomainError: Operation failed (user_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when an operation targets an identifier that does not exist.

    Maps to HTTP 404 Not Found.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.

    Example:
        >>> raise NotFoundError("User", "4b1c...")
        NotFoundError: User not found: 4b1c...
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        **extra_context: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "User").
            resource_id: Identifier of missing resource.
            **extra_context: Additional debugging context.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity. Use for domain rule violations
    on command input, not for request schema validation.

    Attributes:
        error_code: "VALIDATION_ERROR" (class constant).
        field: Field path that failed validation.
        reason: Human-readable validation failure reason.

    Example:
        >>> raise ValidationError("page", "must be >= 1")
        ValidationError: Validation failed for 'page': must be >= 1
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            field: Field path that failed validation.
            reason: Human-readable validation failure reason.
            **extra_context: Additional debugging context.
        """
        self.field = field
        self.reason = reason
        message = f"Validation failed for '{field}': {reason}"
        context = {
            "field": field,
            "reason": reason,
            **extra_context,
        }
        super().__init__(message, context)


class MissingRequiredFieldError(ValidationError):
    """Raised when a required user field is absent or blank.

    Groups the fields that are checked together: ``("email", "password")``
    on the credential check and ``("first_name", "last_name")`` on the
    name check.

    Attributes:
        error_code: "MISSING_REQUIRED_FIELD" (class constant).
        fields: Names of the fields belonging to the failed check.

    Example:
        >>> raise MissingRequiredFieldError("email", "password")
        MissingRequiredFieldError: Validation failed for 'email/password': is required
    """

    error_code: str = "MISSING_REQUIRED_FIELD"

    def __init__(self, *fields: str) -> None:
        """Initialize missing field error.

        Args:
            *fields: Names of the required fields that were checked together.
        """
        self.fields = fields
        super().__init__("/".join(fields), "is required", fields=list(fields))


class ConflictError(DomainError):
    """Raised when an operation conflicts with current system state.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict (e.g., "Resource already exists").
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class DuplicateEmailError(ConflictError):
    """Raised when an email is already used by another user.

    Raised both by the service pre-check and by the repository when the
    storage-level unique index rejects a write, so callers see one kind
    regardless of which layer caught the duplicate.

    Attributes:
        error_code: "DUPLICATE_EMAIL" (class constant).
        email: The conflicting email address.
    """

    error_code: str = "DUPLICATE_EMAIL"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("email already exists", email=email)


class TransientStoreError(DomainError):
    """Raised when the persistence layer is unreachable or times out.

    Maps to HTTP 503 Service Unavailable. Retrying later may succeed.

    Attributes:
        error_code: "STORE_UNAVAILABLE" (class constant).
        operation: Repository operation that failed.
    """

    error_code: str = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        super().__init__(
            f"User store unavailable during {operation}: {reason}",
            {"operation": operation},
        )


class PublishError(DomainError):
    """Raised when a domain event could not be delivered to the broker.

    Only ever raised inside detached publish tasks; the service logs it
    and never propagates it to the caller whose write already succeeded.

    Attributes:
        error_code: "PUBLISH_FAILED" (class constant).
    """

    error_code: str = "PUBLISH_FAILED"
