from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging
import threading
from typing import Callable
from uuid import uuid4

from .booking import normalize_stay
from .catalog import Room, RoomCatalog, RoomType, sort_rooms
from .errors import AuthenticationRequired, Forbidden, NotAvailable, NotFound
from .store import BookingRecord, ReservationStore

logger = logging.getLogger(__name__)

DateLike = date | datetime | str


@dataclass(frozen=True)
class StayQuote:
    room: Room
    check_in: date
    check_out: date
    nights: int
    total_price: float

    def to_dict(self) -> dict[str, object]:
        return {
            "room_id": self.room.room_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "price": self.room.price,
            "total_price": self.total_price,
        }


class ReservationLedger:
    """Availability checks and the create/cancel transitions for bookings.

    Writes are serialized per room: the overlap check and the insert for a
    room run while holding that room's lock, and the store re-checks overlap
    inside ``insert_if_available``. Reads never take room locks.
    """

    def __init__(
        self,
        catalog: RoomCatalog,
        store: ReservationStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self._clock: Callable[[], datetime] = clock or datetime.now
        self._room_locks: dict[str, threading.Lock] = {}
        self._room_locks_guard = threading.Lock()

    def _room_lock(self, room_id: str) -> threading.Lock:
        with self._room_locks_guard:
            lock = self._room_locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._room_locks[room_id] = lock
            return lock

    def check_availability(
        self,
        check_in: DateLike,
        check_out: DateLike,
        room_type: RoomType | str | None = None,
        sort: str | None = None,
    ) -> list[Room]:
        stay = normalize_stay(check_in, check_out)
        candidates = self.catalog.list_rooms(room_type)
        available = [
            room
            for room in candidates
            if not self.store.find_overlapping(room.room_id, stay.check_in, stay.check_out)
        ]
        return sort_rooms(available, sort)

    def is_room_available(self, room_id: str, check_in: DateLike, check_out: DateLike) -> bool:
        stay = normalize_stay(check_in, check_out)
        self.catalog.get_room(room_id)
        return not self.store.find_overlapping(room_id, stay.check_in, stay.check_out)

    def quote(self, room_id: str, check_in: DateLike, check_out: DateLike) -> StayQuote:
        stay = normalize_stay(check_in, check_out)
        room = self.catalog.get_room(room_id)
        return StayQuote(
            room=room,
            check_in=stay.check_in,
            check_out=stay.check_out,
            nights=stay.nights,
            total_price=room.price * stay.nights,
        )

    def create_booking(
        self,
        room_id: str,
        check_in: DateLike,
        check_out: DateLike,
        user_id: str | None,
    ) -> BookingRecord:
        if not user_id:
            raise AuthenticationRequired("You must be logged in to book a room.")

        stay = normalize_stay(check_in, check_out)
        self.catalog.get_room(room_id)

        with self._room_lock(room_id):
            if self.store.find_overlapping(room_id, stay.check_in, stay.check_out):
                logger.info("Rejected booking for room %s %s~%s: overlap", room_id, stay.check_in, stay.check_out)
                raise NotAvailable("This room is not available for the selected dates.")

            record = BookingRecord(
                booking_id=str(uuid4()),
                user_id=user_id,
                room_id=room_id,
                check_in=stay.check_in,
                check_out=stay.check_out,
                created_at=self._clock(),
            )
            if not self.store.insert_if_available(record):
                logger.info("Rejected booking for room %s %s~%s: store constraint", room_id, stay.check_in, stay.check_out)
                raise NotAvailable("This room is not available for the selected dates.")

        logger.info("Booking %s created for room %s by %s", record.booking_id, room_id, user_id)
        return record

    def cancel_booking(self, booking_id: str, user_id: str | None) -> BookingRecord:
        record = self.get_booking(booking_id)
        if not user_id or record.user_id != user_id:
            raise Forbidden("You can only cancel your own bookings.")

        with self._room_lock(record.room_id):
            removed = self.store.remove(booking_id)
        if removed is None:
            raise NotFound(f"Booking {booking_id!r} does not exist.")

        logger.info("Booking %s cancelled by %s", booking_id, user_id)
        return removed

    def get_booking(self, booking_id: str) -> BookingRecord:
        record = self.store.get(booking_id)
        if record is None:
            raise NotFound(f"Booking {booking_id!r} does not exist.")
        return record

    def list_bookings_for_user(self, user_id: str) -> list[BookingRecord]:
        owned = [record for record in self.store.list_reservations() if record.user_id == user_id]
        owned.sort(key=lambda record: (record.check_in, record.created_at))
        return owned

    def list_bookings_for_room(self, room_id: str) -> list[BookingRecord]:
        self.catalog.get_room(room_id)
        booked = [record for record in self.store.list_reservations() if record.room_id == room_id]
        booked.sort(key=lambda record: record.check_in)
        return booked
