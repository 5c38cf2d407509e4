from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, TypeVar
import threading
from uuid import uuid4

from .booking import Reservation
from .errors import NotFoundError
from .records import Band, Room, normalize_features, normalize_name

ROOMS = "rooms"
BANDS = "bands"
RESERVATIONS = "reservations"

T = TypeVar("T")


class BookingRepository:
    """Room, band and reservation storage shared by the concrete stores.

    Subclasses provide row level persistence. All mutations run under a
    re-entrant lock; callers that read, decide and then write must wrap the
    sequence in ``transaction()`` so no other writer slips in between.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def _read_rows(self, kind: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    def _write_rows(self, kind: str, rows: list[dict[str, Any]]) -> None:
        raise NotImplementedError

    def _append_event(self, event: dict[str, Any]) -> None:
        raise NotImplementedError

    def get_events(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    def log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self._lock:
            self._append_event({"event_time": timestamp, "event_type": event_type, "payload": payload})

    def _load(self, kind: str, factory: Callable[[dict[str, Any]], T]) -> list[T]:
        records: list[T] = []
        for index, row in enumerate(self._read_rows(kind)):
            try:
                records.append(factory(row))
            except (KeyError, TypeError, ValueError) as error:
                self.log_event(
                    "ROW_SKIPPED",
                    {"kind": kind, "index": index, "reason": str(error) or type(error).__name__},
                )
        return records

    # Reservations

    def list_reservations(self) -> list[Reservation]:
        return self._load(RESERVATIONS, Reservation.from_dict)

    def list_reservations_for_room(self, room_id: str) -> list[Reservation]:
        return [record for record in self.list_reservations() if record.room_id == room_id]

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        for record in self.list_reservations():
            if record.reservation_id == reservation_id:
                return record
        return None

    def add_reservation(self, record: Reservation) -> Reservation:
        with self._lock:
            rows = self._read_rows(RESERVATIONS)
            rows.append(record.to_dict())
            self._write_rows(RESERVATIONS, rows)
        return record

    def replace_reservation(self, record: Reservation) -> Reservation:
        with self._lock:
            rows = self._read_rows(RESERVATIONS)
            index = _find_row(rows, "reservation_id", record.reservation_id)
            if index < 0:
                raise NotFoundError("Booking not found")
            rows[index] = record.to_dict()
            self._write_rows(RESERVATIONS, rows)
        return record

    def delete_reservation(self, reservation_id: str) -> Reservation:
        with self._lock:
            rows = self._read_rows(RESERVATIONS)
            index = _find_row(rows, "reservation_id", reservation_id)
            if index < 0:
                raise NotFoundError("Booking not found")
            removed = Reservation.from_dict(rows.pop(index))
            self._write_rows(RESERVATIONS, rows)
        return removed

    # Rooms

    def list_rooms(self) -> list[Room]:
        return self._load(ROOMS, Room.from_dict)

    def get_room(self, room_id: str) -> Room | None:
        for room in self.list_rooms():
            if room.room_id == room_id:
                return room
        return None

    def add_room(
        self,
        name: str,
        location: str | None = None,
        features: Any = None,
        color: str | None = None,
        now: datetime | None = None,
    ) -> Room:
        room = Room(
            room_id=str(uuid4()),
            name=normalize_name(name, "Room name"),
            location=location,
            features=normalize_features(features),
            color=color,
        )
        with self._lock:
            rows = self._read_rows(ROOMS)
            rows.append(room.to_dict())
            self._write_rows(ROOMS, rows)
            self.log_event("ROOM_CREATED", {"room_id": room.room_id, "name": room.name}, now)
        return room

    def update_room(
        self,
        room_id: str,
        *,
        name: str | None = None,
        location: str | None = None,
        features: Any = None,
        color: str | None = None,
        now: datetime | None = None,
    ) -> Room:
        with self._lock:
            rows = self._read_rows(ROOMS)
            index = _find_row(rows, "room_id", room_id)
            if index < 0:
                raise NotFoundError("Room not found")

            current = Room.from_dict(rows[index])
            updated = Room(
                room_id=current.room_id,
                name=normalize_name(name, "Room name") if name is not None else current.name,
                location=location if location is not None else current.location,
                features=normalize_features(features) if features is not None else current.features,
                color=color if color is not None else current.color,
                band_ids=current.band_ids,
            )
            rows[index] = updated.to_dict()
            self._write_rows(ROOMS, rows)
            self.log_event("ROOM_UPDATED", {"room_id": room_id, "name": updated.name}, now)
        return updated

    def delete_room(self, room_id: str, now: datetime | None = None) -> Room:
        """Delete a room together with every booking made for it."""
        with self._lock:
            rows = self._read_rows(ROOMS)
            index = _find_row(rows, "room_id", room_id)
            if index < 0:
                raise NotFoundError("Room not found")
            removed = Room.from_dict(rows.pop(index))

            cancelled = self._drop_reservations(lambda row: str(row.get("room_id")) == room_id)
            self._write_rows(ROOMS, rows)
            self.log_event(
                "ROOM_DELETED",
                {"room_id": room_id, "name": removed.name, "cancelled_bookings": cancelled},
                now,
            )
        return removed

    def assign_bands_to_room(self, room_id: str, band_ids: Iterable[str], now: datetime | None = None) -> Room:
        requested = list(dict.fromkeys(str(band_id) for band_id in band_ids))
        with self._lock:
            known_bands = {band.band_id for band in self.list_bands()}
            missing = [band_id for band_id in requested if band_id not in known_bands]
            if missing:
                raise NotFoundError(f"Band not found: {', '.join(missing)}")

            rows = self._read_rows(ROOMS)
            index = _find_row(rows, "room_id", room_id)
            if index < 0:
                raise NotFoundError("Room not found")

            current = Room.from_dict(rows[index])
            updated = Room(
                room_id=current.room_id,
                name=current.name,
                location=current.location,
                features=current.features,
                color=current.color,
                band_ids=tuple(requested),
            )
            rows[index] = updated.to_dict()
            self._write_rows(ROOMS, rows)
            self.log_event("ROOM_BANDS_ASSIGNED", {"room_id": room_id, "band_ids": requested}, now)
        return updated

    # Bands

    def list_bands(self) -> list[Band]:
        return self._load(BANDS, Band.from_dict)

    def get_band(self, band_id: str) -> Band | None:
        for band in self.list_bands():
            if band.band_id == band_id:
                return band
        return None

    def add_band(self, name: str, contact_email: str | None = None, now: datetime | None = None) -> Band:
        band = Band(band_id=str(uuid4()), name=normalize_name(name, "Band name"), contact_email=contact_email)
        with self._lock:
            rows = self._read_rows(BANDS)
            rows.append(band.to_dict())
            self._write_rows(BANDS, rows)
            self.log_event("BAND_CREATED", {"band_id": band.band_id, "name": band.name}, now)
        return band

    def delete_band(self, band_id: str, now: datetime | None = None) -> Band:
        """Delete a band, its bookings and its room assignments."""
        with self._lock:
            rows = self._read_rows(BANDS)
            index = _find_row(rows, "band_id", band_id)
            if index < 0:
                raise NotFoundError("Band not found")
            removed = Band.from_dict(rows.pop(index))

            cancelled = self._drop_reservations(lambda row: str(row.get("band_id")) == band_id)

            room_rows = self._read_rows(ROOMS)
            for room_row in room_rows:
                assigned = [str(value) for value in room_row.get("band_ids") or []]
                if band_id in assigned:
                    room_row["band_ids"] = [value for value in assigned if value != band_id]
            self._write_rows(ROOMS, room_rows)
            self._write_rows(BANDS, rows)
            self.log_event(
                "BAND_DELETED",
                {"band_id": band_id, "name": removed.name, "cancelled_bookings": cancelled},
                now,
            )
        return removed

    def _drop_reservations(self, predicate: Callable[[dict[str, Any]], bool]) -> int:
        rows = self._read_rows(RESERVATIONS)
        remaining = [row for row in rows if not predicate(row)]
        dropped = len(rows) - len(remaining)
        if dropped:
            self._write_rows(RESERVATIONS, remaining)
        return dropped


def _find_row(rows: list[dict[str, Any]], key: str, value: str) -> int:
    for index, row in enumerate(rows):
        if str(row.get(key)) == value:
            return index
    return -1
