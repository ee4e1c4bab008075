class ReservationDomainError(Exception):
    """Base class for errors raised by the reservation core."""


class InvalidInputError(ReservationDomainError):
    pass


class NotFoundError(ReservationDomainError):
    pass


class ForbiddenError(ReservationDomainError):
    pass


class CapacityError(ReservationDomainError):
    pass


class AlreadyCancelledError(ReservationDomainError):
    pass


class RestaurantInUseError(ReservationDomainError):
    pass


class UnavailableError(ReservationDomainError):
    """Transient storage or lock failure. Safe to retry with the same request."""
