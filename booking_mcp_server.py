from __future__ import annotations

from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from rehearsal_booking import (
    ROLE_ADMIN,
    Actor,
    BookingService,
    BookingYamlRepository,
    ConflictError,
    find_conflict,
    load_settings,
    parse_instant,
)

mcp = FastMCP(
    "Rehearsal Booking MCP Server",
    instructions="Expose rehearsal room bookings and the conflict checker from the rehearsal_booking project.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
SETTINGS = load_settings()
REPOSITORY = BookingYamlRepository(DATA_DIR)
SERVICE = BookingService(REPOSITORY, settings=SETTINGS)
ADMIN = Actor(role=ROLE_ADMIN)


@mcp.resource("booking://rooms")
async def list_rooms() -> list[dict[str, Any]]:
    """List rehearsal rooms."""
    return [room.to_dict() for room in REPOSITORY.list_rooms()]


@mcp.resource("booking://bands")
async def list_bands() -> list[dict[str, Any]]:
    """List registered bands."""
    return [band.to_dict() for band in REPOSITORY.list_bands()]


@mcp.tool()
def list_bookings(room_id: str | None = None, start_iso: str | None = None, end_iso: str | None = None) -> list[dict[str, Any]]:
    """Return bookings, optionally filtered by room and time window."""
    records = SERVICE.list_bookings(ADMIN, start=start_iso, end=end_iso, room_id=room_id)
    return [record.to_dict() for record in records]


@mcp.tool()
def check_conflict(room_id: str, start_iso: str, end_iso: str, exclude_id: str | None = None) -> dict[str, Any]:
    """Report whether a slot is free in a room, and which booking blocks it if not."""
    conflict = find_conflict(
        room_id,
        parse_instant(start_iso),
        parse_instant(end_iso),
        REPOSITORY.list_reservations_for_room(room_id),
        exclude_id=exclude_id,
    )
    return {"available": conflict is None, "conflict": conflict.to_dict() if conflict else None}


@mcp.tool()
def create_booking(room_id: str, band_id: str, start_iso: str, end_iso: str) -> dict[str, Any]:
    """Book a room for a band using ISO timestamps."""
    try:
        created = SERVICE.create_booking(ADMIN, room_id, start_iso, end_iso, band_id=band_id)
    except ConflictError as error:
        return {"ok": False, "message": str(error), "conflict": error.reservation.to_dict()}
    return {"ok": True, "reservation": created.to_dict()}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
