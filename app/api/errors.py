from __future__ import annotations

from fastapi import HTTPException, status

from app.errors import ErrorKind, SupportError

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    # Delivery failures are swallowed by the dispatcher; reaching a route is a bug.
    ErrorKind.NOTIFICATION_DELIVERY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_exception(exc: SupportError) -> HTTPException:
    """Translate a service error into the matching HTTP error."""

    return HTTPException(status_code=_STATUS_BY_KIND[exc.kind], detail=exc.message)
