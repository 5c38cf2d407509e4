from __future__ import annotations

import copy
from typing import Any

from .repository import BANDS, RESERVATIONS, ROOMS, BookingRepository


class InMemoryBookingRepository(BookingRepository):
    """Process local store, used by tests and throwaway app instances."""

    def __init__(self) -> None:
        super().__init__()
        self._rows: dict[str, list[dict[str, Any]]] = {ROOMS: [], BANDS: [], RESERVATIONS: []}
        self._events: list[dict[str, Any]] = []

    def _read_rows(self, kind: str) -> list[dict[str, Any]]:
        return copy.deepcopy(self._rows[kind])

    def _write_rows(self, kind: str, rows: list[dict[str, Any]]) -> None:
        self._rows[kind] = copy.deepcopy(rows)

    def _append_event(self, event: dict[str, Any]) -> None:
        self._events.append(event)

    def get_events(self) -> list[dict[str, Any]]:
        return list(self._events)

    def reset(self) -> None:
        with self.transaction():
            for kind in self._rows:
                self._rows[kind] = []
            self._events.clear()
