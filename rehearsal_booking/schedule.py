from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

import holidays as pyholidays

from .booking import Reservation, has_time_overlap
from .repository import BookingRepository

_HOLIDAY_CACHE: dict[tuple[str, int], dict[date, str]] = {}


def period_to_days(period: str) -> int:
    if period == "day":
        return 1
    if period == "week":
        return 7
    return 30


def window_for_period(period: str, anchor: date) -> tuple[datetime, datetime]:
    start = datetime(anchor.year, anchor.month, anchor.day)
    return start, start + timedelta(days=period_to_days(period))


def build_schedule(
    repository: BookingRepository,
    window_start: datetime,
    window_end: datetime,
    holiday_country: str | None = None,
) -> dict[str, Any]:
    """Summarize every room's bookings inside ``[window_start, window_end)``."""
    if window_end <= window_start:
        raise ValueError("window_end must be later than window_start")

    reservations = repository.list_reservations()
    bands = {band.band_id: band.name for band in repository.list_bands()}
    window_minutes = int((window_end - window_start).total_seconds() // 60)

    rows: list[dict[str, Any]] = []
    for room in sorted(repository.list_rooms(), key=lambda item: (item.name, item.room_id)):
        in_window = sorted(
            (
                item
                for item in reservations
                if item.room_id == room.room_id and has_time_overlap(window_start, window_end, item.start, item.end)
            ),
            key=lambda item: (item.start, item.end),
        )
        reserved_minutes = sum(_clipped_minutes(item, window_start, window_end) for item in in_window)

        rows.append(
            {
                "room_id": room.room_id,
                "name": room.name,
                "color": room.color,
                "reservation_count": len(in_window),
                "reserved_minutes": reserved_minutes,
                "occupancy_rate": (reserved_minutes / window_minutes) if window_minutes > 0 else 0.0,
                "reservations": [
                    {
                        "reservation_id": item.reservation_id,
                        "band_id": item.band_id,
                        "band_name": bands.get(item.band_id),
                        "start": item.start.isoformat(),
                        "end": item.end.isoformat(),
                    }
                    for item in in_window
                ],
            }
        )

    return {
        "window_start": window_start.isoformat(timespec="minutes"),
        "window_end": window_end.isoformat(timespec="minutes"),
        "holidays": list_holidays(window_start.date(), window_end, holiday_country),
        "rooms": rows,
    }


def list_holidays(start_date: date, window_end: datetime, country: str | None) -> list[dict[str, str]]:
    if not country:
        return []

    found: list[dict[str, str]] = []
    cursor = start_date
    while datetime(cursor.year, cursor.month, cursor.day) < window_end:
        name = _holidays_for(country, cursor.year).get(cursor)
        if name:
            found.append({"date": cursor.isoformat(), "name": name})
        cursor += timedelta(days=1)
    return found


def _holidays_for(country: str, year: int) -> dict[date, str]:
    key = (country, year)
    if key not in _HOLIDAY_CACHE:
        _HOLIDAY_CACHE[key] = dict(pyholidays.country_holidays(country, years=[year]).items())
    return _HOLIDAY_CACHE[key]


def _clipped_minutes(item: Reservation, window_start: datetime, window_end: datetime) -> int:
    clipped_start = max(item.start, window_start)
    clipped_end = min(item.end, window_end)
    return max(0, int((clipped_end - clipped_start).total_seconds() // 60))
