from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    location: str | None = None
    features: tuple[str, ...] = field(default_factory=tuple)
    color: str | None = None
    band_ids: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "name": self.name,
            "location": self.location,
            "features": list(self.features),
            "color": self.color,
            "band_ids": list(self.band_ids),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Room":
        return Room(
            room_id=str(data["room_id"]),
            name=str(data["name"]),
            location=(str(data["location"]) if data.get("location") is not None else None),
            features=normalize_features(data.get("features")),
            color=(str(data["color"]) if data.get("color") is not None else None),
            band_ids=tuple(str(value) for value in data.get("band_ids") or []),
        )


@dataclass(frozen=True)
class Band:
    band_id: str
    name: str
    contact_email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "band_id": self.band_id,
            "name": self.name,
            "contact_email": self.contact_email,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Band":
        return Band(
            band_id=str(data["band_id"]),
            name=str(data["name"]),
            contact_email=(str(data["contact_email"]) if data.get("contact_email") is not None else None),
        )


def normalize_features(features: Any) -> tuple[str, ...]:
    """Accept a list of features or a comma separated string."""
    if features is None:
        return ()
    if isinstance(features, str):
        items = features.split(",")
    else:
        items = [str(item) for item in features]
    return tuple(item.strip() for item in items if item.strip())


def normalize_name(value: str | None, label: str) -> str:
    if value is None:
        raise ValueError(f"{label} is required")

    normalized = str(value).strip()
    if not normalized:
        raise ValueError(f"{label} is required")
    return normalized
