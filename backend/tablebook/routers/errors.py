from fastapi import HTTPException, status

from ..domain.errors import (
    AlreadyCancelledError,
    CapacityError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    ReservationDomainError,
    RestaurantInUseError,
    UnavailableError,
)

# error type -> (status code, fixed detail or None to use the error message)
_ERROR_MAP: dict[type[ReservationDomainError], tuple[int, str | None]] = {
    InvalidInputError: (status.HTTP_400_BAD_REQUEST, None),
    NotFoundError: (status.HTTP_404_NOT_FOUND, None),
    ForbiddenError: (status.HTTP_403_FORBIDDEN, None),
    CapacityError: (status.HTTP_409_CONFLICT, "Not enough available seats for the selected time"),
    AlreadyCancelledError: (status.HTTP_400_BAD_REQUEST, "Reservation is already cancelled"),
    RestaurantInUseError: (status.HTTP_400_BAD_REQUEST, "Cannot delete restaurant with existing reservations"),
    UnavailableError: (status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable, retry the request"),
}


def http_error(exc: ReservationDomainError) -> HTTPException:
    for error_type in type(exc).__mro__:
        if error_type in _ERROR_MAP:
            code, detail = _ERROR_MAP[error_type]
            return HTTPException(status_code=code, detail=detail or str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
