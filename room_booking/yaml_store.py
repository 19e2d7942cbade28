from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable
import hashlib
import shutil
import threading

import yaml

from .catalog import Room, RoomCatalog, generate_demo_rooms, room_from_dict
from .errors import MalformedRecordError, ReservationStorageError
from .store import BookingRecord


class BookingYamlRepository:
    """File-backed ReservationStore plus the room catalog file.

    Layout under ``base_dir``::

        rooms.yaml            room inventory
        bookings.yaml         active bookings
        booking_events.yaml   append-only event log
    """

    def __init__(self, base_dir: str | Path = "data", seed_demo_rooms: bool = True) -> None:
        self.base_dir = Path(base_dir)
        self.rooms_file = self.base_dir / "rooms.yaml"
        self.bookings_file = self.base_dir / "bookings.yaml"
        self.log_file = self.base_dir / "booking_events.yaml"
        self._lock = threading.RLock()
        self._reported_skips: set[tuple[str, str, int, str]] = set()
        self._ensure_files(seed_demo_rooms)

    def _ensure_files(self, seed_demo_rooms: bool) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.bookings_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")
        if not self.rooms_file.exists():
            self.rooms_file.write_text("[]\n", encoding="utf-8")
            if seed_demo_rooms:
                self.seed_rooms(generate_demo_rooms())

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
            else:
                self._log_skipped_row(path, index, "row is not a mapping")
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
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
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name) if backup_path is not None else None,
                    "reason": str(error),
                },
            )

    def _log_skipped_row(self, path: Path, index: int, reason: str) -> None:
        if path == self.log_file:
            return
        try:
            digest = hashlib.sha256(path.read_bytes()).hexdigest()
        except OSError:
            digest = ""
        key = (path.name, digest, index, reason)
        if key in self._reported_skips:
            return
        self._reported_skips.add(key)
        self._log_event("YAML_ROW_SKIPPED", {"file": str(path.name), "index": index, "reason": reason})

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        with self._lock:
            events = self._read_yaml_list(self.log_file)
            events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
            self._write_yaml_list(self.log_file, events)

    def read_events(self) -> list[dict[str, Any]]:
        with self._lock:
            return self._read_yaml_list(self.log_file)

    def load_rooms(self) -> list[Room]:
        with self._lock:
            rows = self._read_yaml_list(self.rooms_file)
            rooms: list[Room] = []
            for index, row in enumerate(rows):
                try:
                    rooms.append(room_from_dict(row))
                except MalformedRecordError as error:
                    self._log_skipped_row(self.rooms_file, index, str(error))
            return rooms

    def load_catalog(self) -> RoomCatalog:
        return RoomCatalog(self.load_rooms())

    def seed_rooms(self, rooms: Iterable[Room], overwrite: bool = True) -> list[Room]:
        seeded = list(rooms)
        with self._lock:
            rows = [] if overwrite else self._read_yaml_list(self.rooms_file)
            rows.extend(room.to_dict() for room in seeded)
            self._write_yaml_list(self.rooms_file, rows)
            self._log_event(
                "ROOMS_SEEDED",
                {"count": len(seeded), "room_ids": [room.room_id for room in seeded], "overwrite": overwrite},
            )
        return seeded

    def _load_bookings(self) -> list[BookingRecord]:
        known_rooms = {room.room_id for room in self.load_rooms()}
        rows = self._read_yaml_list(self.bookings_file)
        records: list[BookingRecord] = []
        for index, row in enumerate(rows):
            try:
                record = BookingRecord.from_dict(row)
            except MalformedRecordError as error:
                self._log_skipped_row(self.bookings_file, index, str(error))
                continue
            if known_rooms and record.room_id not in known_rooms:
                self._log_skipped_row(self.bookings_file, index, f"room_id {record.room_id} is not in the room catalog")
                continue
            records.append(record)
        return records

    def list_reservations(self) -> list[BookingRecord]:
        with self._lock:
            return self._load_bookings()

    def get(self, booking_id: str) -> BookingRecord | None:
        with self._lock:
            for record in self._load_bookings():
                if record.booking_id == booking_id:
                    return record
            return None

    def find_overlapping(self, room_id: str, check_in: date, check_out: date) -> list[BookingRecord]:
        with self._lock:
            return [
                record
                for record in self._load_bookings()
                if record.room_id == room_id and record.overlaps(check_in, check_out)
            ]

    def insert_if_available(self, record: BookingRecord) -> bool:
        with self._lock:
            existing = self._load_bookings()
            if any(row.booking_id == record.booking_id for row in existing):
                raise ValueError(f"Duplicate booking_id: {record.booking_id}")
            if any(row.room_id == record.room_id and row.overlaps(record.check_in, record.check_out) for row in existing):
                return False

            rows = [row.to_dict() for row in existing]
            rows.append(record.to_dict())
            self._write_yaml_list(self.bookings_file, rows)

            self._log_event(
                "BOOKING_CREATED",
                {
                    "booking_id": record.booking_id,
                    "room_id": record.room_id,
                    "user_id": record.user_id,
                    "check_in": record.check_in.isoformat(),
                    "check_out": record.check_out.isoformat(),
                },
                record.created_at,
            )
            return True

    def remove(self, booking_id: str) -> BookingRecord | None:
        with self._lock:
            existing = self._load_bookings()
            removed = next((record for record in existing if record.booking_id == booking_id), None)
            if removed is None:
                return None

            self._write_yaml_list(
                self.bookings_file,
                [record.to_dict() for record in existing if record.booking_id != booking_id],
            )
            self._log_event(
                "BOOKING_CANCELLED",
                {
                    "booking_id": removed.booking_id,
                    "room_id": removed.room_id,
                    "user_id": removed.user_id,
                    "check_in": removed.check_in.isoformat(),
                    "check_out": removed.check_out.isoformat(),
                },
            )
            return removed
