import tempfile
import unittest
from pathlib import Path

from rehearsal_booking.config import BookingSettings, load_settings


class TestLoadSettings(unittest.TestCase):
    def test_defaults_without_file_or_environment(self) -> None:
        settings = load_settings(environ={})

        self.assertEqual(settings.data_dir, Path("data"))
        self.assertIsNone(settings.min_duration_minutes)
        self.assertIsNone(settings.max_duration_minutes)
        self.assertIsNone(settings.holiday_country)

    def test_reads_yaml_file_and_applies_environment_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "booking.yaml"
            config_path.write_text(
                "data_dir: /srv/bookings\nmin_duration_minutes: 30\nmax_duration_minutes: 240\nholiday_country: de\n",
                encoding="utf-8",
            )

            from_file = load_settings(config_path, environ={})
            self.assertEqual(from_file.data_dir, Path("/srv/bookings"))
            self.assertEqual(from_file.min_duration_minutes, 30)
            self.assertEqual(from_file.max_duration_minutes, 240)
            self.assertEqual(from_file.holiday_country, "DE")

            overridden = load_settings(
                environ={
                    "REHEARSAL_BOOKING_CONFIG": str(config_path),
                    "REHEARSAL_BOOKING_DATA_DIR": "/tmp/other",
                    "REHEARSAL_BOOKING_HOLIDAY_COUNTRY": "us",
                }
            )
            self.assertEqual(overridden.data_dir, Path("/tmp/other"))
            self.assertEqual(overridden.holiday_country, "US")
            self.assertEqual(overridden.min_duration_minutes, 30)

    def test_rejects_unknown_keys_and_non_mappings(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "booking.yaml"
            config_path.write_text("max_bookings: 3\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_settings(config_path, environ={})

            config_path.write_text("- just\n- a list\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_settings(config_path, environ={})

    def test_rejects_inconsistent_duration_bounds(self) -> None:
        with self.assertRaises(ValueError):
            BookingSettings(min_duration_minutes=0)
        with self.assertRaises(ValueError):
            BookingSettings(min_duration_minutes=120, max_duration_minutes=60)


if __name__ == "__main__":
    unittest.main()
