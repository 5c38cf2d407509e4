from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable

from .errors import InvalidIntervalError


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    room_id: str
    band_id: str
    start: datetime
    end: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidIntervalError("Reservation start time must be earlier than end time.")

    def reschedule(self, start: datetime, end: datetime, now: datetime) -> "Reservation":
        return replace(self, start=start, end=end, updated_at=now)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reservation_id": self.reservation_id,
            "room_id": self.room_id,
            "band_id": self.band_id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }
        if self.created_at is not None:
            payload["created_at"] = self.created_at.isoformat(timespec="seconds")
        if self.updated_at is not None:
            payload["updated_at"] = self.updated_at.isoformat(timespec="seconds")
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        return Reservation(
            reservation_id=str(data["reservation_id"]),
            room_id=str(data["room_id"]),
            band_id=str(data["band_id"]),
            start=parse_instant(data["start"]),
            end=parse_instant(data["end"]),
            created_at=(parse_instant(data["created_at"]) if data.get("created_at") else None),
            updated_at=(parse_instant(data["updated_at"]) if data.get("updated_at") else None),
        )


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant into a naive UTC datetime.

    Offset-aware values are converted to UTC; naive values are taken as UTC already.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            raise InvalidIntervalError("Timestamp must not be empty.")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as error:
            raise InvalidIntervalError(f"Invalid ISO-8601 timestamp: {text}") from error

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_interval(start: datetime, end: datetime) -> None:
    if start >= end:
        raise InvalidIntervalError("start must be earlier than end.")


def has_time_overlap(new_start: datetime, new_end: datetime, exist_start: datetime, exist_end: datetime) -> bool:
    """Return True when two time intervals overlap by even one instant.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    validate_interval(new_start, new_end)
    validate_interval(exist_start, exist_end)

    return new_start < exist_end and exist_start < new_end


def find_conflict(
    room_id: str,
    candidate_start: datetime,
    candidate_end: datetime,
    existing_reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> Reservation | None:
    """Return the earliest reservation in ``room_id`` overlapping the candidate, or None.

    Reservations for other rooms and the one named by ``exclude_id`` are ignored.
    Ties are broken by (start, end, reservation_id) so the result is deterministic.
    """
    validate_interval(candidate_start, candidate_end)

    relevant = sorted(
        (
            reservation
            for reservation in existing_reservations
            if reservation.room_id == room_id and reservation.reservation_id != exclude_id
        ),
        key=lambda reservation: (reservation.start, reservation.end, reservation.reservation_id),
    )
    for reservation in relevant:
        if has_time_overlap(candidate_start, candidate_end, reservation.start, reservation.end):
            return reservation
    return None


def can_reserve(
    room_id: str,
    new_start: datetime,
    new_end: datetime,
    existing_reservations: Iterable[Reservation],
    exclude_id: str | None = None,
) -> bool:
    """Return True if the requested interval does not overlap any reservation in the room."""
    return find_conflict(room_id, new_start, new_end, existing_reservations, exclude_id=exclude_id) is None
