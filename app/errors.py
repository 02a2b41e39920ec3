"""Error kinds raised by the support service core."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Tag carried by every service error so callers can branch on it."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOTIFICATION_DELIVERY = "notification_delivery"


class SupportError(RuntimeError):
    """Base error for support service issues."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(SupportError):
    """Raised when an entity id does not resolve."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(SupportError):
    """Raised for illegal transitions and lost races."""

    kind = ErrorKind.CONFLICT


class ValidationError(SupportError):
    """Raised for malformed input such as an unknown category."""

    kind = ErrorKind.VALIDATION


class AuthorizationError(SupportError):
    """Raised when the acting user may not perform the mutation."""

    kind = ErrorKind.AUTHORIZATION


class NotificationDeliveryError(SupportError):
    """Internal to the notification path; always caught and logged."""

    kind = ErrorKind.NOTIFICATION_DELIVERY
