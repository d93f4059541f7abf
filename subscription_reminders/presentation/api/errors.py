from typing import Dict, Type

from fastapi import HTTPException, status

from ...domain.errors import (
    ConfirmationAlreadyProcessedError,
    ConfirmationExpiredError,
    InvalidTransitionError,
    NotFoundError,
    NotificationDispatchError,
    ReminderError,
    SubscriptionNotActiveError,
)

_STATUS_BY_ERROR: Dict[Type[ReminderError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConfirmationExpiredError: status.HTTP_410_GONE,
    ConfirmationAlreadyProcessedError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    SubscriptionNotActiveError: status.HTTP_409_CONFLICT,
    NotificationDispatchError: status.HTTP_502_BAD_GATEWAY,
}


def to_http_exception(exc: ReminderError) -> HTTPException:
    """Translate a domain error into a response the landing page can tell apart."""
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type in type(exc).__mro__:
        if error_type in _STATUS_BY_ERROR:
            status_code = _STATUS_BY_ERROR[error_type]
            break
    return HTTPException(
        status_code=status_code,
        detail={"success": False, "code": exc.code, "message": str(exc)},
    )
