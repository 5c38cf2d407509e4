from .booking import Reservation, can_reserve, find_conflict, has_time_overlap, parse_instant
from .booking_service import ROLE_ADMIN, ROLE_BAND, Actor, BookingService
from .config import BookingSettings, load_settings
from .errors import (
	AuthenticationError,
	BookingError,
	BookingStorageError,
	ConflictError,
	ForbiddenError,
	InvalidIntervalError,
	InvalidRequestError,
	NotFoundError,
)
from .memory_store import InMemoryBookingRepository
from .records import Band, Room
from .repository import BookingRepository
from .yaml_store import BookingYamlRepository, generate_demo_reservations

__all__ = [
	"Reservation",
	"can_reserve",
	"find_conflict",
	"has_time_overlap",
	"parse_instant",
	"ROLE_ADMIN",
	"ROLE_BAND",
	"Actor",
	"BookingService",
	"BookingSettings",
	"load_settings",
	"AuthenticationError",
	"BookingError",
	"BookingStorageError",
	"ConflictError",
	"ForbiddenError",
	"InvalidIntervalError",
	"InvalidRequestError",
	"NotFoundError",
	"InMemoryBookingRepository",
	"Band",
	"Room",
	"BookingRepository",
	"BookingYamlRepository",
	"generate_demo_reservations",
]
