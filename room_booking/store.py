from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import threading
from typing import Any, Protocol

from .booking import Stay, has_date_overlap
from .catalog import required_text
from .errors import MalformedRecordError


@dataclass(frozen=True)
class BookingRecord:
    booking_id: str
    user_id: str
    room_id: str
    check_in: date
    check_out: date
    created_at: datetime

    @property
    def stay(self) -> Stay:
        return Stay(self.check_in, self.check_out)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def overlaps(self, check_in: date, check_out: date) -> bool:
        return has_date_overlap(check_in, check_out, self.check_in, self.check_out)

    def to_dict(self) -> dict[str, str]:
        return {
            "booking_id": self.booking_id,
            "user_id": self.user_id,
            "room_id": self.room_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "created_at": self.created_at.isoformat(timespec="seconds"),
        }

    @staticmethod
    def from_dict(data: Any) -> "BookingRecord":
        if not isinstance(data, dict):
            raise MalformedRecordError("booking row is not a mapping")

        try:
            record = BookingRecord(
                booking_id=required_text(data, "booking_id"),
                user_id=required_text(data, "user_id"),
                room_id=required_text(data, "room_id"),
                check_in=_parse_day(data["check_in"]),
                check_out=_parse_day(data["check_out"]),
                created_at=_parse_timestamp(data["created_at"]),
            )
        except (KeyError, TypeError, ValueError) as error:
            raise MalformedRecordError(f"invalid booking row: {error}") from error

        if record.check_in >= record.check_out:
            raise MalformedRecordError(f"booking {record.booking_id} has check_in >= check_out")
        return record


def _parse_day(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


class ReservationStore(Protocol):
    """Persistence port used by the ledger."""

    def list_reservations(self) -> list[BookingRecord]:
        ...

    def get(self, booking_id: str) -> BookingRecord | None:
        ...

    def find_overlapping(self, room_id: str, check_in: date, check_out: date) -> list[BookingRecord]:
        ...

    def insert_if_available(self, record: BookingRecord) -> bool:
        """Store ``record`` unless it overlaps an existing booking for the same room."""
        ...

    def remove(self, booking_id: str) -> BookingRecord | None:
        ...


class InMemoryReservationStore:
    def __init__(self, records: list[BookingRecord] | None = None) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, BookingRecord] = {}
        self._by_room: dict[str, list[str]] = {}
        for record in records or []:
            if not self.insert_if_available(record):
                raise ValueError(f"Seed booking {record.booking_id} overlaps another booking.")

    def list_reservations(self) -> list[BookingRecord]:
        with self._lock:
            return list(self._records.values())

    def get(self, booking_id: str) -> BookingRecord | None:
        with self._lock:
            return self._records.get(booking_id)

    def find_overlapping(self, room_id: str, check_in: date, check_out: date) -> list[BookingRecord]:
        with self._lock:
            return [
                self._records[booking_id]
                for booking_id in self._by_room.get(room_id, [])
                if self._records[booking_id].overlaps(check_in, check_out)
            ]

    def insert_if_available(self, record: BookingRecord) -> bool:
        with self._lock:
            if record.booking_id in self._records:
                raise ValueError(f"Duplicate booking_id: {record.booking_id}")
            if self.find_overlapping(record.room_id, record.check_in, record.check_out):
                return False
            self._records[record.booking_id] = record
            self._by_room.setdefault(record.room_id, []).append(record.booking_id)
            return True

    def remove(self, booking_id: str) -> BookingRecord | None:
        with self._lock:
            record = self._records.pop(booking_id, None)
            if record is not None:
                self._by_room[record.room_id].remove(booking_id)
            return record
