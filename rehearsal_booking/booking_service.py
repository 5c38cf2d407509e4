from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable
from uuid import uuid4

from .booking import Reservation, find_conflict, has_time_overlap, parse_instant, validate_interval
from .config import BookingSettings
from .errors import ConflictError, ForbiddenError, InvalidIntervalError, InvalidRequestError, NotFoundError
from .repository import BookingRepository

ROLE_ADMIN = "ADMIN"
ROLE_BAND = "BAND"
ROLES = {ROLE_ADMIN, ROLE_BAND}


@dataclass(frozen=True)
class Actor:
    role: str
    band_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_manage(self, reservation: Reservation) -> bool:
        return self.is_admin or (self.band_id is not None and reservation.band_id == self.band_id)


class BookingService:
    """Create, update, cancel and list bookings.

    Every write re-reads the room's reservations and runs the conflict check
    inside ``repository.transaction()``, so two requests for the same slot
    cannot both pass the check.
    """

    def __init__(
        self,
        repository: BookingRepository,
        settings: BookingSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or BookingSettings()
        self.clock: Callable[[], datetime] = clock or datetime.now

    def create_booking(
        self,
        actor: Actor,
        room_id: str,
        start: Any,
        end: Any,
        band_id: str | None = None,
    ) -> Reservation:
        start, end = self._parse_candidate(start, end)
        booking_band_id = self._resolve_band(actor, band_id)

        now = self.clock()
        with self.repository.transaction():
            if self.repository.get_room(room_id) is None:
                raise NotFoundError("Room not found")
            if self.repository.get_band(booking_band_id) is None:
                raise NotFoundError("Band not found")

            existing = self.repository.list_reservations_for_room(room_id)
            conflict = find_conflict(room_id, start, end, existing)
            if conflict is not None:
                self._reject(conflict, room_id, start, end, now)

            record = Reservation(
                reservation_id=str(uuid4()),
                room_id=room_id,
                band_id=booking_band_id,
                start=start,
                end=end,
                created_at=now,
                updated_at=now,
            )
            self.repository.add_reservation(record)
            self.repository.log_event(
                "RESERVATION_CREATED",
                {
                    "reservation_id": record.reservation_id,
                    "room_id": room_id,
                    "band_id": booking_band_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "actor_role": actor.role,
                },
                now,
            )
        return record

    def update_booking(self, actor: Actor, reservation_id: str, start: Any, end: Any) -> Reservation:
        start, end = self._parse_candidate(start, end)

        now = self.clock()
        with self.repository.transaction():
            current = self._get_managed(actor, reservation_id, "update")

            existing = self.repository.list_reservations_for_room(current.room_id)
            conflict = find_conflict(current.room_id, start, end, existing, exclude_id=reservation_id)
            if conflict is not None:
                self._reject(conflict, current.room_id, start, end, now, reservation_id=reservation_id)

            updated = current.reschedule(start, end, now)
            self.repository.replace_reservation(updated)
            self.repository.log_event(
                "RESERVATION_UPDATED",
                {
                    "reservation_id": reservation_id,
                    "room_id": current.room_id,
                    "previous_start": current.start.isoformat(),
                    "previous_end": current.end.isoformat(),
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "actor_role": actor.role,
                },
                now,
            )
        return updated

    def cancel_booking(self, actor: Actor, reservation_id: str) -> Reservation:
        now = self.clock()
        with self.repository.transaction():
            self._get_managed(actor, reservation_id, "delete")
            removed = self.repository.delete_reservation(reservation_id)
            self.repository.log_event(
                "RESERVATION_CANCELLED",
                {
                    "reservation_id": reservation_id,
                    "room_id": removed.room_id,
                    "band_id": removed.band_id,
                    "actor_role": actor.role,
                },
                now,
            )
        return removed

    def get_booking(self, actor: Actor, reservation_id: str) -> Reservation:
        return self._get_managed(actor, reservation_id, "view")

    def list_bookings(
        self,
        actor: Actor,
        start: Any = None,
        end: Any = None,
        room_id: str | None = None,
    ) -> list[Reservation]:
        window_start = parse_instant(start) if start not in (None, "") else None
        window_end = parse_instant(end) if end not in (None, "") else None
        if window_start is not None and window_end is not None:
            validate_interval(window_start, window_end)

        records = self.repository.list_reservations()
        if room_id:
            records = [record for record in records if record.room_id == room_id]
        if not actor.is_admin:
            records = [record for record in records if record.band_id == actor.band_id]

        if window_start is not None and window_end is not None:
            records = [
                record
                for record in records
                if has_time_overlap(window_start, window_end, record.start, record.end)
            ]
        elif window_start is not None:
            records = [record for record in records if record.end > window_start]
        elif window_end is not None:
            records = [record for record in records if record.start < window_end]

        return sorted(records, key=lambda record: (record.start, record.room_id, record.reservation_id))

    def _parse_candidate(self, start: Any, end: Any) -> tuple[datetime, datetime]:
        start = parse_instant(start)
        end = parse_instant(end)
        validate_interval(start, end)

        duration = end - start
        minimum = self.settings.min_duration_minutes
        maximum = self.settings.max_duration_minutes
        if minimum is not None and duration < timedelta(minutes=minimum):
            raise InvalidIntervalError(f"Minimum booking duration is {minimum} minutes.")
        if maximum is not None and duration > timedelta(minutes=maximum):
            raise InvalidIntervalError(f"Maximum booking duration is {maximum} minutes.")
        return start, end

    def _resolve_band(self, actor: Actor, band_id: str | None) -> str:
        if actor.is_admin:
            if not band_id:
                raise InvalidRequestError("bandId is required when an administrator creates a booking.")
            return band_id

        if not actor.band_id:
            raise ForbiddenError("Only bands can create bookings")
        if band_id and band_id != actor.band_id:
            raise ForbiddenError("Bands can only book for themselves")
        return actor.band_id

    def _get_managed(self, actor: Actor, reservation_id: str, action: str) -> Reservation:
        record = self.repository.get_reservation(reservation_id)
        if record is None:
            raise NotFoundError("Booking not found")
        if not actor.can_manage(record):
            raise ForbiddenError(f"Not authorized to {action} this booking")
        return record

    def _reject(
        self,
        conflict: Reservation,
        room_id: str,
        start: datetime,
        end: datetime,
        now: datetime,
        reservation_id: str | None = None,
    ) -> None:
        self.repository.log_event(
            "BOOKING_CONFLICT",
            {
                "room_id": room_id,
                "reservation_id": reservation_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "conflicting_reservation_id": conflict.reservation_id,
            },
            now,
        )
        raise ConflictError(conflict)
