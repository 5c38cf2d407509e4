from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .booking_service import ROLES, Actor, BookingService
from .config import BookingSettings, load_settings
from .errors import AuthenticationError, BookingError, BookingStorageError, ConflictError, ForbiddenError, NotFoundError
from .repository import BookingRepository
from .schedule import build_schedule, window_for_period
from .yaml_store import BookingYamlRepository

ROLE_HEADER = "X-User-Role"
BAND_HEADER = "X-Band-Id"


def create_app(
    data_dir: str | Path | None = None,
    now_provider: Callable[[], datetime] | None = None,
    settings: BookingSettings | None = None,
    repository: BookingRepository | None = None,
) -> Flask:
    app = Flask(__name__)
    effective_settings = settings or load_settings()
    if repository is None:
        repository = BookingYamlRepository(data_dir if data_dir is not None else effective_settings.data_dir)
    clock: Callable[[], datetime] = now_provider or datetime.now
    service = BookingService(repository, settings=effective_settings, clock=clock)

    app.config["BOOKING_REPOSITORY"] = repository
    app.config["BOOKING_SERVICE"] = service

    def _current_actor() -> Actor:
        role = str(request.headers.get(ROLE_HEADER, "")).strip().upper()
        if role not in ROLES:
            raise AuthenticationError("Authentication required")
        band_id = str(request.headers.get(BAND_HEADER, "")).strip() or None
        return Actor(role=role, band_id=band_id)

    def _require_admin() -> Actor:
        actor = _current_actor()
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required")
        return actor

    def _payload() -> dict[str, Any]:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    @app.errorhandler(BookingError)
    def handle_booking_error(error: BookingError) -> Any:
        body: dict[str, Any] = {"ok": False, "message": str(error)}
        if isinstance(error, ConflictError):
            body["conflict"] = error.reservation.to_dict()
        return jsonify(body), error.status_code

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError) -> Any:
        return jsonify({"ok": False, "message": str(error)}), 400

    @app.errorhandler(BookingStorageError)
    def handle_storage_error(error: BookingStorageError) -> Any:
        return jsonify({"ok": False, "message": "Internal server error"}), 500

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type,{ROLE_HEADER},{BAND_HEADER}"
        return response

    @app.get("/api/health")
    def health() -> Any:
        return jsonify({"ok": True, "time": clock().isoformat(timespec="seconds")})

    @app.post("/api/bookings")
    def create_booking() -> Any:
        actor = _current_actor()
        payload = _payload()
        room_id = _required(payload, "roomId", "room_id")
        created = service.create_booking(
            actor,
            room_id=room_id,
            start=_required(payload, "start"),
            end=_required(payload, "end"),
            band_id=_optional(payload, "bandId", "band_id"),
        )
        return jsonify({"ok": True, "reservation": created.to_dict()}), 201

    @app.get("/api/bookings")
    def list_bookings() -> Any:
        actor = _current_actor()
        records = service.list_bookings(
            actor,
            start=request.args.get("start"),
            end=request.args.get("end"),
            room_id=request.args.get("roomId") or request.args.get("room_id"),
        )
        return jsonify({"ok": True, "reservations": [record.to_dict() for record in records]})

    @app.get("/api/bookings/<reservation_id>")
    def get_booking(reservation_id: str) -> Any:
        record = service.get_booking(_current_actor(), reservation_id)
        return jsonify({"ok": True, "reservation": record.to_dict()})

    @app.put("/api/bookings/<reservation_id>")
    def update_booking(reservation_id: str) -> Any:
        actor = _current_actor()
        payload = _payload()
        updated = service.update_booking(
            actor,
            reservation_id,
            start=_required(payload, "start"),
            end=_required(payload, "end"),
        )
        return jsonify({"ok": True, "reservation": updated.to_dict()})

    @app.delete("/api/bookings/<reservation_id>")
    def delete_booking(reservation_id: str) -> Any:
        service.cancel_booking(_current_actor(), reservation_id)
        return "", 204

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        _current_actor()
        return jsonify({"ok": True, "rooms": [room.to_dict() for room in repository.list_rooms()]})

    @app.post("/api/rooms")
    def create_room() -> Any:
        _require_admin()
        payload = _payload()
        room = repository.add_room(
            name=_required(payload, "name"),
            location=_optional(payload, "location"),
            features=payload.get("features"),
            color=_optional(payload, "color"),
            now=clock(),
        )
        return jsonify({"ok": True, "room": room.to_dict()}), 201

    @app.get("/api/rooms/<room_id>")
    def get_room(room_id: str) -> Any:
        _current_actor()
        room = repository.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        bookings = sorted(repository.list_reservations_for_room(room_id), key=lambda record: record.start)
        return jsonify(
            {
                "ok": True,
                "room": room.to_dict(),
                "reservations": [record.to_dict() for record in bookings],
            }
        )

    @app.put("/api/rooms/<room_id>")
    def update_room(room_id: str) -> Any:
        _require_admin()
        payload = _payload()
        room = repository.update_room(
            room_id,
            name=_optional(payload, "name"),
            location=_optional(payload, "location"),
            features=payload.get("features"),
            color=_optional(payload, "color"),
            now=clock(),
        )
        return jsonify({"ok": True, "room": room.to_dict()})

    @app.delete("/api/rooms/<room_id>")
    def delete_room(room_id: str) -> Any:
        _require_admin()
        removed = repository.delete_room(room_id, now=clock())
        return jsonify({"ok": True, "room": removed.to_dict()})

    @app.put("/api/rooms/<room_id>/bands")
    def assign_bands(room_id: str) -> Any:
        _require_admin()
        payload = _payload()
        band_ids = payload.get("bandIds", payload.get("band_ids"))
        if not isinstance(band_ids, list):
            raise ValueError("bandIds must be a list")
        room = repository.assign_bands_to_room(room_id, band_ids, now=clock())
        return jsonify({"ok": True, "room": room.to_dict()})

    @app.get("/api/bands")
    def list_bands() -> Any:
        _current_actor()
        return jsonify({"ok": True, "bands": [band.to_dict() for band in repository.list_bands()]})

    @app.post("/api/bands")
    def create_band() -> Any:
        _require_admin()
        payload = _payload()
        band = repository.add_band(
            name=_required(payload, "name"),
            contact_email=_optional(payload, "contactEmail", "contact_email"),
            now=clock(),
        )
        return jsonify({"ok": True, "band": band.to_dict()}), 201

    @app.get("/api/bands/<band_id>")
    def get_band(band_id: str) -> Any:
        _current_actor()
        band = repository.get_band(band_id)
        if band is None:
            raise NotFoundError("Band not found")
        return jsonify({"ok": True, "band": band.to_dict()})

    @app.delete("/api/bands/<band_id>")
    def delete_band(band_id: str) -> Any:
        _require_admin()
        removed = repository.delete_band(band_id, now=clock())
        return jsonify({"ok": True, "band": removed.to_dict()})

    @app.get("/api/schedule")
    def get_schedule() -> Any:
        _current_actor()
        period = str(request.args.get("period", "day")).lower()
        anchor_text = str(request.args.get("date", "")).strip()
        try:
            anchor = date.fromisoformat(anchor_text) if anchor_text else clock().date()
        except ValueError as error:
            raise ValueError("date must use the YYYY-MM-DD format") from error

        window_start, window_end = window_for_period(period, anchor)
        schedule = build_schedule(repository, window_start, window_end, effective_settings.holiday_country)
        return jsonify({"ok": True, "period": period, **schedule})

    return app


def _required(payload: dict[str, Any], *keys: str) -> str:
    value = _optional(payload, *keys)
    if value is None:
        raise ValueError(f"{keys[0]} is required")
    return value


def _optional(payload: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def main() -> None:
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)


if __name__ == "__main__":
    main()
