from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping
import os

import yaml

CONFIG_ENV = "REHEARSAL_BOOKING_CONFIG"
DATA_DIR_ENV = "REHEARSAL_BOOKING_DATA_DIR"
HOLIDAY_COUNTRY_ENV = "REHEARSAL_BOOKING_HOLIDAY_COUNTRY"


@dataclass(frozen=True)
class BookingSettings:
    data_dir: Path = Path("data")
    # Duration bounds are only enforced when set.
    min_duration_minutes: int | None = None
    max_duration_minutes: int | None = None
    holiday_country: str | None = None

    def __post_init__(self) -> None:
        for name in ("min_duration_minutes", "max_duration_minutes"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if (
            self.min_duration_minutes is not None
            and self.max_duration_minutes is not None
            and self.min_duration_minutes > self.max_duration_minutes
        ):
            raise ValueError("min_duration_minutes must not exceed max_duration_minutes")

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "BookingSettings":
        known = {item.name for item in fields(BookingSettings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(unknown)}")

        return BookingSettings(
            data_dir=Path(str(data.get("data_dir", "data"))),
            min_duration_minutes=_optional_int(data.get("min_duration_minutes")),
            max_duration_minutes=_optional_int(data.get("max_duration_minutes")),
            holiday_country=(str(data["holiday_country"]).upper() if data.get("holiday_country") else None),
        )


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> BookingSettings:
    """Load settings from a YAML file, then apply environment overrides."""
    env = os.environ if environ is None else environ
    config_path = path or env.get(CONFIG_ENV)

    data: dict[str, Any] = {}
    if config_path:
        payload = yaml.safe_load(Path(config_path).read_text(encoding="utf-8"))
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError(f"Settings file must contain a mapping: {config_path}")
        data.update(payload)

    if env.get(DATA_DIR_ENV):
        data["data_dir"] = env[DATA_DIR_ENV]
    if env.get(HOLIDAY_COUNTRY_ENV):
        data["holiday_country"] = env[HOLIDAY_COUNTRY_ENV]

    return BookingSettings.from_mapping(data)


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)
