from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .booking import Reservation


class BookingError(Exception):
    """Base class for booking workflow errors."""

    status_code = 400


class InvalidIntervalError(BookingError, ValueError):
    status_code = 400


class InvalidRequestError(BookingError, ValueError):
    """A request is missing a field or names one that does not apply."""

    status_code = 400


class ConflictError(BookingError):
    status_code = 409

    def __init__(self, reservation: "Reservation") -> None:
        super().__init__("Booking conflict detected")
        self.reservation = reservation


class NotFoundError(BookingError, LookupError):
    status_code = 404


class ForbiddenError(BookingError):
    status_code = 403


class AuthenticationError(BookingError):
    status_code = 401


class BookingStorageError(RuntimeError):
    pass
