from .booking import Stay, can_reserve, has_date_overlap, normalize_stay, to_stay_date
from .catalog import Room, RoomCatalog, RoomType, generate_demo_rooms, room_from_dict
from .errors import (
	AuthenticationRequired,
	BookingError,
	Forbidden,
	InvalidRange,
	MalformedRecordError,
	NotAvailable,
	NotFound,
	ReservationStorageError,
	UnitNotFound,
)
from .ledger import ReservationLedger, StayQuote
from .store import BookingRecord, InMemoryReservationStore, ReservationStore
from .yaml_store import BookingYamlRepository

__all__ = [
	"Stay",
	"can_reserve",
	"has_date_overlap",
	"normalize_stay",
	"to_stay_date",
	"Room",
	"RoomCatalog",
	"RoomType",
	"generate_demo_rooms",
	"room_from_dict",
	"AuthenticationRequired",
	"BookingError",
	"Forbidden",
	"InvalidRange",
	"MalformedRecordError",
	"NotAvailable",
	"NotFound",
	"ReservationStorageError",
	"UnitNotFound",
	"ReservationLedger",
	"StayQuote",
	"BookingRecord",
	"InMemoryReservationStore",
	"ReservationStore",
	"BookingYamlRepository",
]
