from __future__ import annotations

from datetime import datetime, timedelta
import traceback

from rehearsal_booking import ROLE_ADMIN, Actor, BookingService, BookingYamlRepository, ConflictError


def main() -> int:
    print("[INFO] Rehearsal Booking Quick Check")
    print("[INFO] Generating demo data...")

    repo = BookingYamlRepository("data")
    now = datetime(2026, 2, 24, 9, 0)
    generated = repo.seed_demo_data(now=now, overwrite=True)
    print(f"[OK] Demo bookings generated: {len(generated)}")

    service = BookingService(repo, clock=lambda: now)
    admin = Actor(role=ROLE_ADMIN)
    taken = generated[0]

    try:
        service.create_booking(admin, taken.room_id, taken.start, taken.end, band_id=taken.band_id)
    except ConflictError as error:
        print(f"[OK] Duplicate slot rejected, conflicts with {error.reservation.reservation_id}")
    else:
        print("[ERROR] Duplicate slot was accepted.")
        return 1

    adjacent = service.create_booking(
        admin,
        taken.room_id,
        taken.start - timedelta(hours=1),
        taken.start,
        band_id=taken.band_id,
    )
    print(
        "[OK] Adjacent slot accepted: "
        f"{adjacent.start.isoformat(timespec='minutes')}~{adjacent.end.isoformat(timespec='minutes')}"
    )

    print(f"[OK] Rooms: {len(repo.list_rooms())}, bands: {len(repo.list_bands())}")
    print(f"[OK] Bookings: {len(repo.list_reservations())}")
    print(f"[OK] Event Log YAML: {repo.log_file.resolve()}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
