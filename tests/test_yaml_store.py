import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

import yaml

from room_booking import (
    BookingRecord,
    BookingYamlRepository,
    MalformedRecordError,
    NotAvailable,
    NotFound,
    ReservationLedger,
    RoomType,
    generate_demo_rooms,
)
from room_booking.catalog import Room


def _record(booking_id: str, room_id: str, check_in: date, check_out: date, user_id: str = "u1") -> BookingRecord:
    return BookingRecord(
        booking_id=booking_id,
        user_id=user_id,
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        created_at=datetime(2025, 5, 1, 9, 0),
    )


class TestBookingYamlRepository(unittest.TestCase):
    def test_empty_directory_is_seeded_with_demo_rooms(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")

            self.assertEqual(repo.load_rooms(), generate_demo_rooms())
            self.assertEqual(repo.list_reservations(), [])
            self.assertTrue(repo.bookings_file.exists())
            self.assertIn("ROOMS_SEEDED", repo.log_file.read_text(encoding="utf-8"))

    def test_seeding_can_be_disabled(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data", seed_demo_rooms=False)
            self.assertEqual(repo.load_rooms(), [])

    def test_seed_rooms_appends_without_overwrite(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data", seed_demo_rooms=False)
            repo.seed_rooms(generate_demo_rooms()[:1])
            extra = Room(room_id="room-301", name="Attic", room_type=RoomType.SINGLE, price=60.0, capacity=1)
            repo.seed_rooms([extra], overwrite=False)

            self.assertEqual([room.room_id for room in repo.load_rooms()], ["room-101", "room-301"])

    def test_bookings_survive_reopening(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = BookingYamlRepository(data_dir)
            ledger = ReservationLedger(repo.load_catalog(), repo)
            created = ledger.create_booking("room-101", date(2025, 6, 1), date(2025, 6, 5), "u1")

            reopened = BookingYamlRepository(data_dir)
            self.assertEqual(reopened.get(created.booking_id), created)

            other_ledger = ReservationLedger(reopened.load_catalog(), reopened)
            with self.assertRaises(NotAvailable):
                other_ledger.create_booking("room-101", date(2025, 6, 4), date(2025, 6, 6), "u2")

    def test_insert_if_available_rejects_overlap(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            self.assertTrue(repo.insert_if_available(_record("a", "room-101", date(2025, 6, 1), date(2025, 6, 5))))
            self.assertFalse(repo.insert_if_available(_record("b", "room-101", date(2025, 6, 4), date(2025, 6, 6))))
            self.assertTrue(repo.insert_if_available(_record("c", "room-101", date(2025, 6, 5), date(2025, 6, 6))))

            overlapping = repo.find_overlapping("room-101", date(2025, 6, 2), date(2025, 6, 3))
            self.assertEqual([record.booking_id for record in overlapping], ["a"])

    def test_remove_deletes_permanently_and_logs(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            repo.insert_if_available(_record("a", "room-101", date(2025, 6, 1), date(2025, 6, 5)))

            removed = repo.remove("a")
            self.assertEqual(removed.booking_id, "a")
            self.assertIsNone(repo.get("a"))
            self.assertIsNone(repo.remove("a"))

            event_types = [event["event_type"] for event in repo.read_events()]
            self.assertIn("BOOKING_CREATED", event_types)
            self.assertIn("BOOKING_CANCELLED", event_types)

    def test_malformed_booking_rows_are_skipped_and_logged(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            rows = [
                _record("good", "room-101", date(2025, 6, 1), date(2025, 6, 5)).to_dict(),
                {"booking_id": "no-dates", "user_id": "u1", "room_id": "room-101"},
                {
                    "booking_id": "reversed",
                    "user_id": "u1",
                    "room_id": "room-102",
                    "check_in": "2025-06-05",
                    "check_out": "2025-06-01",
                    "created_at": "2025-05-01T09:00:00",
                },
                "not a mapping",
            ]
            repo.bookings_file.write_text(yaml.safe_dump(rows), encoding="utf-8")

            records = repo.list_reservations()
            self.assertEqual([record.booking_id for record in records], ["good"])

            skipped = [event for event in repo.read_events() if event["event_type"] == "YAML_ROW_SKIPPED"]
            self.assertEqual(len(skipped), 3)

    def test_null_identifiers_are_rejected(self) -> None:
        base = _record("b1", "room-101", date(2025, 6, 1), date(2025, 6, 3)).to_dict()
        for key in ("booking_id", "user_id", "room_id"):
            with self.subTest(key=key):
                with self.assertRaises(MalformedRecordError):
                    BookingRecord.from_dict({**base, key: None})
                with self.assertRaises(MalformedRecordError):
                    BookingRecord.from_dict({**base, key: {"nested": "value"}})

    def test_booking_row_with_null_user_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            row = {**_record("b1", "room-101", date(2025, 6, 1), date(2025, 6, 3)).to_dict(), "user_id": None}
            repo.bookings_file.write_text(yaml.safe_dump([row]), encoding="utf-8")

            self.assertEqual(repo.list_reservations(), [])
            self.assertIsNone(repo.get("b1"))

            ledger = ReservationLedger(repo.load_catalog(), repo)
            with self.assertRaises(NotFound):
                ledger.cancel_booking("b1", "None")

    def test_skipped_rows_are_logged_once_per_file_content(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            rows = [
                _record("good", "room-101", date(2025, 6, 1), date(2025, 6, 5)).to_dict(),
                {"booking_id": "no-dates", "user_id": "u1", "room_id": "room-101"},
            ]
            repo.bookings_file.write_text(yaml.safe_dump(rows), encoding="utf-8")
            ledger = ReservationLedger(repo.load_catalog(), repo)

            ledger.check_availability(date(2025, 6, 2), date(2025, 6, 3))
            event_count = len(repo.read_events())
            for _ in range(5):
                ledger.check_availability(date(2025, 6, 2), date(2025, 6, 3))
                repo.list_reservations()
                repo.get("good")

            self.assertEqual(len(repo.read_events()), event_count)
            skipped = [event for event in repo.read_events() if event["event_type"] == "YAML_ROW_SKIPPED"]
            self.assertEqual(len(skipped), 1)

    def test_bookings_for_unknown_rooms_are_skipped_and_logged(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            rows = [
                _record("good", "room-101", date(2025, 6, 1), date(2025, 6, 5)).to_dict(),
                _record("ghost", "room-999", date(2025, 6, 1), date(2025, 6, 5)).to_dict(),
            ]
            repo.bookings_file.write_text(yaml.safe_dump(rows), encoding="utf-8")

            self.assertEqual([record.booking_id for record in repo.list_reservations()], ["good"])
            skipped = [event for event in repo.read_events() if event["event_type"] == "YAML_ROW_SKIPPED"]
            self.assertEqual(len(skipped), 1)
            self.assertEqual(skipped[0]["payload"]["index"], 1)
            self.assertIn("room catalog", skipped[0]["payload"]["reason"])

    def test_yaml_date_values_are_accepted(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            repo.bookings_file.write_text(
                "- booking_id: b1\n"
                "  user_id: u1\n"
                "  room_id: room-101\n"
                "  check_in: 2025-06-01\n"
                "  check_out: 2025-06-03\n"
                "  created_at: 2025-05-01 09:00:00\n",
                encoding="utf-8",
            )

            record = repo.get("b1")
            self.assertIsNotNone(record)
            self.assertEqual(record.check_in, date(2025, 6, 1))
            self.assertEqual(record.nights, 2)

    def test_corrupted_yaml_is_backed_up_and_reset(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = BookingYamlRepository(data_dir)
            repo.bookings_file.write_text("booking_id: [unclosed\n", encoding="utf-8")

            self.assertEqual(repo.list_reservations(), [])
            self.assertEqual(repo.bookings_file.read_text(encoding="utf-8"), "[]\n")
            backups = list(data_dir.glob("bookings.corrupt.*.yaml"))
            self.assertEqual(len(backups), 1)
            self.assertIn("YAML_RECOVERED", repo.log_file.read_text(encoding="utf-8"))

    def test_top_level_mapping_is_treated_as_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = BookingYamlRepository(Path(temp_dir) / "data")
            repo.rooms_file.write_text("room_id: room-101\n", encoding="utf-8")

            self.assertEqual(repo.load_rooms(), [])
            recovered = [event for event in repo.read_events() if event["event_type"] == "YAML_RECOVERED"]
            self.assertEqual(recovered[-1]["payload"]["file"], "rooms.yaml")


if __name__ == "__main__":
    unittest.main()
