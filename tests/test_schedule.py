import unittest
from datetime import date, datetime

from rehearsal_booking import InMemoryBookingRepository, Reservation
from rehearsal_booking.schedule import build_schedule, list_holidays, window_for_period


class TestWindowForPeriod(unittest.TestCase):
    def test_periods(self) -> None:
        self.assertEqual(
            window_for_period("day", date(2026, 2, 24)),
            (datetime(2026, 2, 24), datetime(2026, 2, 25)),
        )
        self.assertEqual(window_for_period("week", date(2026, 2, 24))[1], datetime(2026, 3, 3))
        self.assertEqual(window_for_period("month", date(2026, 2, 24))[1], datetime(2026, 3, 26))


class TestBuildSchedule(unittest.TestCase):
    def test_bookings_are_clipped_to_the_window(self) -> None:
        repo = InMemoryBookingRepository()
        room = repo.add_room("Studio A")
        repo.add_reservation(
            Reservation("late", room.room_id, "band-1", datetime(2026, 2, 24, 23, 0), datetime(2026, 2, 25, 1, 0))
        )
        repo.add_reservation(
            Reservation("next-day", room.room_id, "band-1", datetime(2026, 2, 25, 10, 0), datetime(2026, 2, 25, 11, 0))
        )

        schedule = build_schedule(repo, datetime(2026, 2, 24), datetime(2026, 2, 25))

        row = schedule["rooms"][0]
        self.assertEqual(row["reservation_count"], 1)
        self.assertEqual(row["reserved_minutes"], 60)
        self.assertAlmostEqual(row["occupancy_rate"], 60 / 1440)
        self.assertEqual(schedule["holidays"], [])

    def test_rejects_empty_window(self) -> None:
        with self.assertRaises(ValueError):
            build_schedule(InMemoryBookingRepository(), datetime(2026, 2, 24), datetime(2026, 2, 24))


class TestListHolidays(unittest.TestCase):
    def test_lists_holidays_for_configured_country(self) -> None:
        found = list_holidays(date(2026, 12, 24), datetime(2026, 12, 27), "DE")
        self.assertEqual([item["date"] for item in found], ["2026-12-25", "2026-12-26"])

    def test_no_country_means_no_holidays(self) -> None:
        self.assertEqual(list_holidays(date(2026, 12, 24), datetime(2026, 12, 27), None), [])


if __name__ == "__main__":
    unittest.main()
