from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .errors import MalformedRecordError, UnitNotFound

SORT_KEYS = {"price-asc", "price-desc"}


class RoomType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    room_type: RoomType
    price: float
    capacity: int
    description: str = ""
    amenities: tuple[str, ...] = field(default_factory=tuple)
    image: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_id": self.room_id,
            "name": self.name,
            "room_type": self.room_type.value,
            "price": self.price,
            "capacity": self.capacity,
            "description": self.description,
            "amenities": list(self.amenities),
            "image": self.image,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Room":
        return room_from_dict(data)


def parse_room_type(value: RoomType | str | None) -> RoomType | None:
    if value is None or isinstance(value, RoomType):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    try:
        return RoomType(text)
    except ValueError as error:
        raise ValueError(f"Unknown room type: {value!r}") from error


def required_text(data: dict[str, Any], key: str) -> str:
    """Return a stripped, non-empty scalar field or raise MalformedRecordError."""
    if key not in data:
        raise MalformedRecordError(f"missing field: {key}")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MalformedRecordError(f"{key} must be text, got {value!r}")
    text = str(value).strip()
    if not text:
        raise MalformedRecordError(f"{key} must not be empty")
    return text


def room_from_dict(data: Any) -> Room:
    """Map a schemaless row into a Room, rejecting anything malformed."""
    if not isinstance(data, dict):
        raise MalformedRecordError("room row is not a mapping")

    try:
        room_id = required_text(data, "room_id")
        name = str(data.get("name") or room_id).strip()
        room_type = RoomType(str(data["room_type"]).strip().lower())
        price = float(data["price"])
        capacity = int(data["capacity"])
    except (KeyError, TypeError, ValueError) as error:
        raise MalformedRecordError(f"invalid room row: {error}") from error

    if price < 0:
        raise MalformedRecordError(f"room {room_id} has a negative price")
    if capacity <= 0:
        raise MalformedRecordError(f"room {room_id} must have a positive capacity")

    amenities = data.get("amenities") or []
    if not isinstance(amenities, (list, tuple)):
        raise MalformedRecordError(f"room {room_id} amenities must be a list")

    return Room(
        room_id=room_id,
        name=name,
        room_type=room_type,
        price=price,
        capacity=capacity,
        description=str(data.get("description") or ""),
        amenities=tuple(str(item) for item in amenities),
        image=str(data.get("image") or ""),
    )


def sort_rooms(rooms: Iterable[Room], sort: str | None) -> list[Room]:
    ordered = list(rooms)
    if sort is None:
        return ordered
    if sort not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort!r}")
    return sorted(ordered, key=lambda room: (room.price, room.room_id), reverse=sort == "price-desc")


class RoomCatalog:
    """Read-only set of bookable rooms."""

    def __init__(self, rooms: Iterable[Room]) -> None:
        self._rooms: dict[str, Room] = {}
        for room in rooms:
            if room.room_id in self._rooms:
                raise ValueError(f"Duplicate room_id: {room.room_id}")
            self._rooms[room.room_id] = room

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def list_rooms(self, room_type: RoomType | str | None = None, sort: str | None = None) -> list[Room]:
        wanted = parse_room_type(room_type)
        rooms = [room for room in self._rooms.values() if wanted is None or room.room_type == wanted]
        return sort_rooms(rooms, sort)

    def get_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise UnitNotFound(f"Room {room_id!r} does not exist.")
        return room


def generate_demo_rooms() -> list[Room]:
    return [
        Room(
            room_id="room-101",
            name="Cozy Single",
            room_type=RoomType.SINGLE,
            price=89.0,
            capacity=1,
            description="A quiet single room overlooking the garden.",
            amenities=("Wi-Fi", "Desk", "Shower"),
            image="/images/room-101.jpg",
        ),
        Room(
            room_id="room-102",
            name="Standard Single",
            room_type=RoomType.SINGLE,
            price=99.0,
            capacity=1,
            description="Single room with a city view.",
            amenities=("Wi-Fi", "TV", "Shower"),
            image="/images/room-102.jpg",
        ),
        Room(
            room_id="room-201",
            name="Classic Double",
            room_type=RoomType.DOUBLE,
            price=149.0,
            capacity=2,
            description="Double room with a queen bed.",
            amenities=("Wi-Fi", "TV", "Mini bar", "Bathtub"),
            image="/images/room-201.jpg",
        ),
        Room(
            room_id="room-202",
            name="Deluxe Double",
            room_type=RoomType.DOUBLE,
            price=189.0,
            capacity=3,
            description="Spacious double room with a sofa bed and balcony.",
            amenities=("Wi-Fi", "TV", "Mini bar", "Balcony", "Bathtub"),
            image="/images/room-202.jpg",
        ),
    ]
