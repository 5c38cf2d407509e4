import threading
import unittest
from contextlib import contextmanager
from datetime import datetime

from rehearsal_booking import (
    ROLE_ADMIN,
    ROLE_BAND,
    Actor,
    BookingService,
    BookingSettings,
    ConflictError,
    ForbiddenError,
    InMemoryBookingRepository,
    InvalidIntervalError,
    InvalidRequestError,
    NotFoundError,
)

NOW = datetime(2026, 2, 24, 8, 0)


def at(hour: int, minute: int = 0, day: int = 25) -> datetime:
    return datetime(2026, 2, day, hour, minute)


class RoomDeletedBeforeNextWrite(InMemoryBookingRepository):
    """Deletes a room just before the next writer takes the lock."""

    def __init__(self) -> None:
        super().__init__()
        self.doomed_room_id: str | None = None

    @contextmanager
    def transaction(self):
        if self.doomed_room_id is not None:
            room_id, self.doomed_room_id = self.doomed_room_id, None
            self.delete_room(room_id)
        with super().transaction():
            yield


class BookingServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = InMemoryBookingRepository()
        self.room = self.repo.add_room("Studio A", location="Basement", features="drum kit, PA")
        self.other_room = self.repo.add_room("Studio B")
        self.band = self.repo.add_band("The Feedback Loops", contact_email="loops@example.com")
        self.other_band = self.repo.add_band("Tape Hiss")
        self.service = BookingService(self.repo, clock=lambda: NOW)
        self.admin = Actor(role=ROLE_ADMIN)
        self.member = Actor(role=ROLE_BAND, band_id=self.band.band_id)
        self.other_member = Actor(role=ROLE_BAND, band_id=self.other_band.band_id)

    def book(self, start: datetime, end: datetime, room_id: str | None = None, actor: Actor | None = None):
        return self.service.create_booking(actor or self.member, room_id or self.room.room_id, start, end)


class TestCreateBooking(BookingServiceTestCase):
    def test_room_x_scenario(self) -> None:
        morning = self.book(at(9), at(10))
        afternoon = self.book(at(14), at(15))

        accepted = self.book(at(10), at(10, 30))
        self.assertEqual(accepted.band_id, self.band.band_id)

        with self.assertRaises(ConflictError) as caught:
            self.book(at(9, 30), at(10, 15))
        self.assertEqual(caught.exception.reservation.reservation_id, morning.reservation_id)

        with self.assertRaises(ConflictError) as caught:
            self.book(at(13), at(16))
        self.assertEqual(caught.exception.reservation.reservation_id, afternoon.reservation_id)

        self.assertEqual(len(self.repo.list_reservations()), 3)

    def test_same_slot_in_another_room_is_accepted(self) -> None:
        self.book(at(10), at(11))
        created = self.book(at(10), at(11), room_id=self.other_room.room_id)
        self.assertEqual(created.room_id, self.other_room.room_id)

    def test_invalid_interval_is_rejected_before_anything_else(self) -> None:
        with self.assertRaises(InvalidIntervalError):
            self.book(at(10), at(10))
        with self.assertRaises(InvalidIntervalError):
            self.service.create_booking(self.member, "missing-room", at(11), at(10))
        self.assertEqual(self.repo.list_reservations(), [])

    def test_accepts_iso_strings(self) -> None:
        created = self.service.create_booking(
            self.member, self.room.room_id, "2026-02-25T10:00:00Z", "2026-02-25T12:00:00+01:00"
        )
        self.assertEqual(created.start, at(10))
        self.assertEqual(created.end, at(11))

    def test_missing_room_or_band_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.create_booking(self.member, "missing-room", at(10), at(11))
        with self.assertRaises(NotFoundError):
            self.service.create_booking(self.admin, self.room.room_id, at(10), at(11), band_id="missing-band")

    def test_band_cannot_book_for_another_band(self) -> None:
        with self.assertRaises(ForbiddenError):
            self.service.create_booking(
                self.member, self.room.room_id, at(10), at(11), band_id=self.other_band.band_id
            )

    def test_actor_without_band_cannot_book(self) -> None:
        with self.assertRaises(ForbiddenError):
            self.service.create_booking(Actor(role=ROLE_BAND), self.room.room_id, at(10), at(11))

    def test_admin_must_name_the_band(self) -> None:
        with self.assertRaises(InvalidRequestError) as caught:
            self.service.create_booking(self.admin, self.room.room_id, at(10), at(11))
        self.assertEqual(caught.exception.status_code, 400)
        with self.assertRaises(ValueError):
            self.service.create_booking(self.admin, self.room.room_id, at(10), at(11))

        created = self.service.create_booking(
            self.admin, self.room.room_id, at(10), at(11), band_id=self.other_band.band_id
        )
        self.assertEqual(created.band_id, self.other_band.band_id)

    def test_room_deleted_before_the_write_lock_leaves_no_orphan(self) -> None:
        repo = RoomDeletedBeforeNextWrite()
        room = repo.add_room("Studio C")
        band = repo.add_band("Late Arrivals")
        service = BookingService(repo, clock=lambda: NOW)
        repo.doomed_room_id = room.room_id

        with self.assertRaises(NotFoundError):
            service.create_booking(Actor(role=ROLE_BAND, band_id=band.band_id), room.room_id, at(10), at(11))
        self.assertEqual(repo.list_reservations(), [])
        self.assertNotIn("RESERVATION_CREATED", [event["event_type"] for event in repo.get_events()])

    def test_conflicts_and_creations_are_logged(self) -> None:
        self.book(at(10), at(11))
        with self.assertRaises(ConflictError):
            self.book(at(10), at(11))

        event_types = [event["event_type"] for event in self.repo.get_events()]
        self.assertIn("RESERVATION_CREATED", event_types)
        self.assertIn("BOOKING_CONFLICT", event_types)

    def test_concurrent_requests_for_one_slot_commit_once(self) -> None:
        results: list[str] = []
        barrier = threading.Barrier(8)

        def attempt() -> None:
            barrier.wait()
            try:
                self.book(at(18), at(20))
                results.append("created")
            except ConflictError:
                results.append("conflict")

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count("created"), 1)
        self.assertEqual(results.count("conflict"), 7)
        self.assertEqual(len(self.repo.list_reservations_for_room(self.room.room_id)), 1)


class TestDurationBounds(BookingServiceTestCase):
    def test_bounds_are_not_enforced_by_default(self) -> None:
        self.book(at(10), at(10, 5))
        self.book(at(11), at(19))

    def test_configured_bounds_are_enforced(self) -> None:
        service = BookingService(
            self.repo,
            settings=BookingSettings(min_duration_minutes=30, max_duration_minutes=240),
            clock=lambda: NOW,
        )
        with self.assertRaises(InvalidIntervalError):
            service.create_booking(self.member, self.room.room_id, at(10), at(10, 29))
        with self.assertRaises(InvalidIntervalError):
            service.create_booking(self.member, self.room.room_id, at(10), at(14, 1))
        service.create_booking(self.member, self.room.room_id, at(10), at(14))


class TestUpdateBooking(BookingServiceTestCase):
    def test_update_does_not_conflict_with_its_own_slot(self) -> None:
        current = self.book(at(10), at(11))
        updated = self.service.update_booking(self.member, current.reservation_id, at(10, 15), at(11, 15))

        self.assertEqual(updated.reservation_id, current.reservation_id)
        self.assertEqual((updated.start, updated.end), (at(10, 15), at(11, 15)))
        self.assertEqual(updated.created_at, current.created_at)
        self.assertEqual(self.repo.get_reservation(current.reservation_id), updated)

    def test_update_still_conflicts_with_other_reservations(self) -> None:
        current = self.book(at(10), at(11))
        neighbour = self.book(at(11), at(12))

        with self.assertRaises(ConflictError) as caught:
            self.service.update_booking(self.member, current.reservation_id, at(10, 15), at(11, 15))
        self.assertEqual(caught.exception.reservation.reservation_id, neighbour.reservation_id)
        self.assertEqual(self.repo.get_reservation(current.reservation_id), current)

    def test_update_is_scoped_to_the_booking_room(self) -> None:
        current = self.book(at(10), at(11))
        self.book(at(12), at(13), room_id=self.other_room.room_id)

        updated = self.service.update_booking(self.member, current.reservation_id, at(12), at(13))
        self.assertEqual(updated.room_id, self.room.room_id)

    def test_update_rejects_invalid_interval(self) -> None:
        current = self.book(at(10), at(11))
        with self.assertRaises(InvalidIntervalError):
            self.service.update_booking(self.member, current.reservation_id, at(11), at(11))

    def test_update_missing_booking_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.update_booking(self.member, "missing", at(10), at(11))

    def test_only_owner_or_admin_may_update(self) -> None:
        current = self.book(at(10), at(11))
        with self.assertRaises(ForbiddenError):
            self.service.update_booking(self.other_member, current.reservation_id, at(12), at(13))

        moved = self.service.update_booking(self.admin, current.reservation_id, at(12), at(13))
        self.assertEqual(moved.start, at(12))


class TestCancelAndList(BookingServiceTestCase):
    def test_cancel_frees_the_slot(self) -> None:
        current = self.book(at(10), at(11))
        self.service.cancel_booking(self.member, current.reservation_id)

        self.assertIsNone(self.repo.get_reservation(current.reservation_id))
        self.book(at(10), at(11))

    def test_cancel_checks_ownership(self) -> None:
        current = self.book(at(10), at(11))
        with self.assertRaises(ForbiddenError):
            self.service.cancel_booking(self.other_member, current.reservation_id)
        with self.assertRaises(NotFoundError):
            self.service.cancel_booking(self.member, "missing")

    def test_list_filters_by_window_room_and_band(self) -> None:
        early = self.book(at(9), at(10))
        late = self.book(at(15), at(16))
        elsewhere = self.book(at(9), at(10), room_id=self.other_room.room_id)
        foreign = self.book(at(12), at(13), actor=self.other_member)

        own = self.service.list_bookings(self.member)
        self.assertEqual(
            {record.reservation_id for record in own},
            {early.reservation_id, elsewhere.reservation_id, late.reservation_id},
        )
        self.assertEqual(own[-1].reservation_id, late.reservation_id)

        everything = self.service.list_bookings(self.admin)
        self.assertEqual(len(everything), 4)
        self.assertEqual([record.start for record in everything], sorted(record.start for record in everything))

        in_room = self.service.list_bookings(self.admin, room_id=self.room.room_id)
        self.assertEqual({record.reservation_id for record in in_room}, {early.reservation_id, late.reservation_id, foreign.reservation_id})

        window = self.service.list_bookings(self.admin, start=at(10), end=at(15))
        self.assertEqual([record.reservation_id for record in window], [foreign.reservation_id])

    def test_list_rejects_inverted_window(self) -> None:
        with self.assertRaises(InvalidIntervalError):
            self.service.list_bookings(self.admin, start=at(15), end=at(10))


if __name__ == "__main__":
    unittest.main()
