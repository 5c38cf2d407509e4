from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any
import random
import shutil
from uuid import uuid4

import yaml

from .booking import Reservation
from .errors import BookingStorageError
from .repository import BANDS, RESERVATIONS, ROOMS, BookingRepository

DEMO_ROOMS = [
    ("Studio A", "Basement", ["drum kit", "PA"], "#e57373"),
    ("Studio B", "Basement", ["PA", "keyboard"], "#64b5f6"),
    ("Live Room", "Ground floor", ["drum kit", "PA", "stage lights"], "#81c784"),
]
DEMO_BANDS = [
    ("The Feedback Loops", "loops@example.com"),
    ("Quiet Riot Grrrls", "grrrls@example.com"),
    ("Minor Sevenths", "sevenths@example.com"),
    ("Tape Hiss", "hiss@example.com"),
]
DEMO_OPENING_HOUR = 10
DEMO_CLOSING_HOUR = 22


class BookingYamlRepository(BookingRepository):
    def __init__(self, base_dir: str | Path = "data") -> None:
        super().__init__()
        self.base_dir = Path(base_dir)
        self.files = {
            ROOMS: self.base_dir / "rooms.yaml",
            BANDS: self.base_dir / "bands.yaml",
            RESERVATIONS: self.base_dir / "bookings.yaml",
        }
        self.log_file = self.base_dir / "booking_events.yaml"
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (*self.files.values(), self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_rows(self, kind: str) -> list[dict[str, Any]]:
        return self._read_yaml_list(self.files[kind])

    def _write_rows(self, kind: str, rows: list[dict[str, Any]]) -> None:
        self._write_yaml_list(self.files[kind], rows)

    def _append_event(self, event: dict[str, Any]) -> None:
        events = self._read_yaml_list(self.log_file)
        events.append(event)
        self._write_yaml_list(self.log_file, events)

    def get_events(self) -> list[dict[str, Any]]:
        return self._read_yaml_list(self.log_file)

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self.log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise BookingStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            backup_path = None

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self.log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name) if backup_path else None,
                    "reason": str(error),
                },
            )

    def seed_demo_data(self, now: datetime | None = None, overwrite: bool = True) -> list[Reservation]:
        """Create demo rooms and bands plus a week of non-overlapping bookings."""
        effective_now = now or datetime.now()
        with self.transaction():
            if overwrite:
                for kind in (ROOMS, BANDS, RESERVATIONS):
                    self._write_rows(kind, [])

            rooms = [
                self.add_room(name, location=location, features=features, color=color, now=effective_now)
                for name, location, features, color in DEMO_ROOMS
            ]
            bands = [self.add_band(name, contact_email=email, now=effective_now) for name, email in DEMO_BANDS]

            generated = generate_demo_reservations(
                start_date=effective_now.date() + timedelta(days=1),
                room_ids=[room.room_id for room in rooms],
                band_ids=[band.band_id for band in bands],
                now=effective_now,
            )
            rows = self._read_rows(RESERVATIONS)
            rows.extend(record.to_dict() for record in generated)
            self._write_rows(RESERVATIONS, rows)

            self.log_event(
                "DEMO_DATA_GENERATED",
                {
                    "rooms": len(rooms),
                    "bands": len(bands),
                    "bookings": len(generated),
                    "opening_hours": f"{DEMO_OPENING_HOUR:02d}:00-{DEMO_CLOSING_HOUR:02d}:00",
                    "overwrite": overwrite,
                },
                effective_now,
            )
        return generated


def generate_demo_reservations(
    start_date: date,
    room_ids: list[str],
    band_ids: list[str],
    days: int = 7,
    slots_per_day: int = 3,
    now: datetime | None = None,
) -> list[Reservation]:
    if days <= 0:
        raise ValueError("days must be greater than zero")
    if slots_per_day <= 0:
        raise ValueError("slots_per_day must be greater than zero")
    if not room_ids or not band_ids:
        raise ValueError("room_ids and band_ids must not be empty")

    rng = random.Random(f"demo:{start_date.isoformat()}:{days}:{slots_per_day}")
    created_at = now or datetime.now()
    records: list[Reservation] = []

    for offset in range(days):
        day = start_date + timedelta(days=offset)
        for room_id in room_ids:
            # Walk the day left to right so the generated slots never overlap.
            cursor = datetime(day.year, day.month, day.day, DEMO_OPENING_HOUR, 0)
            closing = datetime(day.year, day.month, day.day, DEMO_CLOSING_HOUR, 0)
            for _ in range(slots_per_day):
                cursor += timedelta(minutes=rng.choice([0, 30, 60, 90]))
                duration = timedelta(minutes=rng.choice([60, 90, 120, 180]))
                if cursor + duration > closing:
                    break
                records.append(
                    Reservation(
                        reservation_id=str(uuid4()),
                        room_id=room_id,
                        band_id=rng.choice(band_ids),
                        start=cursor,
                        end=cursor + duration,
                        created_at=created_at,
                        updated_at=created_at,
                    )
                )
                cursor += duration

    return records
