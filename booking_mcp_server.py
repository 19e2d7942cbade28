from __future__ import annotations

import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from room_booking import BookingError, BookingYamlRepository, ReservationLedger

mcp = FastMCP(
    "Room Booking MCP Server",
    instructions="Expose room inventory, availability and booking operations from the room_booking project.",
    json_response=True,
)

DATA_DIR = Path(os.environ.get("ROOM_BOOKING_DATA_DIR", Path(__file__).parent / "data"))
REPOSITORY = BookingYamlRepository(DATA_DIR)
LEDGER = ReservationLedger(REPOSITORY.load_catalog(), REPOSITORY)


def _failure(error: Exception) -> dict[str, str | bool]:
    return {"ok": False, "error": getattr(error, "kind", "invalid_request"), "message": str(error)}


@mcp.resource("booking://rooms")
async def list_rooms() -> list[dict]:
    """List every bookable room."""
    return [room.to_dict() for room in LEDGER.catalog.list_rooms(sort="price-asc")]


@mcp.tool()
def check_availability(check_in: str, check_out: str, room_type: str | None = None) -> dict:
    """Return rooms free for [check_in, check_out), optionally filtered by room type."""
    try:
        rooms = LEDGER.check_availability(check_in, check_out, room_type=room_type, sort="price-asc")
    except (BookingError, ValueError) as error:
        return _failure(error)
    return {"ok": True, "rooms": [room.to_dict() for room in rooms]}


@mcp.tool()
def create_booking(room_id: str, check_in: str, check_out: str, user_id: str) -> dict:
    """Book a room for ISO check-in/check-out dates on behalf of user_id."""
    try:
        created = LEDGER.create_booking(room_id, check_in, check_out, user_id)
    except (BookingError, ValueError) as error:
        return _failure(error)
    return {"ok": True, "booking": created.to_dict()}


@mcp.tool()
def cancel_booking(booking_id: str, user_id: str) -> dict:
    """Cancel a booking owned by user_id."""
    try:
        cancelled = LEDGER.cancel_booking(booking_id, user_id)
    except BookingError as error:
        return _failure(error)
    return {"ok": True, "booking": cancelled.to_dict()}


@mcp.tool()
def list_user_bookings(user_id: str) -> list[dict[str, str]]:
    """Return the bookings owned by user_id."""
    return [record.to_dict() for record in LEDGER.list_bookings_for_user(user_id)]


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
