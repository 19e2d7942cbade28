from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .catalog import Room
from .errors import (
    AuthenticationRequired,
    BookingError,
    Forbidden,
    InvalidRange,
    NotAvailable,
    NotFound,
)
from .ledger import ReservationLedger
from .store import BookingRecord
from .yaml_store import BookingYamlRepository

USER_HEADER = "X-User-Id"
DATA_DIR_ENV = "ROOM_BOOKING_DATA_DIR"

_ERROR_STATUS: list[tuple[type[BookingError], int]] = [
    (InvalidRange, 400),
    (AuthenticationRequired, 401),
    (Forbidden, 403),
    (NotFound, 404),
    (NotAvailable, 409),
]


def create_app(
    data_dir: str | Path = "data",
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__)
    repository = BookingYamlRepository(data_dir)
    ledger = ReservationLedger(repository.load_catalog(), repository, clock=now_provider)

    def _current_user_id() -> str | None:
        value = request.headers.get(USER_HEADER, "").strip()
        return value or None

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = f"Content-Type,{USER_HEADER}"
        return response

    @app.get("/api/rooms")
    def list_rooms() -> Any:
        try:
            rooms = ledger.catalog.list_rooms(request.args.get("type"), sort=request.args.get("sort"))
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400
        return jsonify({"ok": True, "rooms": [room.to_dict() for room in rooms]})

    @app.get("/api/rooms/<room_id>")
    def get_room(room_id: str) -> Any:
        try:
            room = ledger.catalog.get_room(room_id)
        except BookingError as error:
            return _error_response(error)
        return jsonify({"ok": True, "room": room.to_dict()})

    @app.get("/api/rooms/<room_id>/quote")
    def quote_room(room_id: str) -> Any:
        check_in = request.args.get("check_in", "")
        check_out = request.args.get("check_out", "")
        try:
            quote = ledger.quote(room_id, check_in, check_out)
            available = ledger.is_room_available(room_id, check_in, check_out)
        except BookingError as error:
            return _error_response(error)
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400
        return jsonify({"ok": True, "available": available, "quote": quote.to_dict()})

    @app.get("/api/availability")
    def check_availability() -> Any:
        check_in = request.args.get("check_in", "")
        check_out = request.args.get("check_out", "")
        try:
            rooms = ledger.check_availability(
                check_in,
                check_out,
                room_type=request.args.get("type"),
                sort=request.args.get("sort"),
            )
        except BookingError as error:
            return _error_response(error)
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400
        return jsonify(
            {
                "ok": True,
                "check_in": check_in,
                "check_out": check_out,
                "rooms": [room.to_dict() for room in rooms],
            }
        )

    @app.post("/api/bookings")
    def create_booking() -> Any:
        payload = request.get_json(silent=True) or {}
        room_id = str(payload.get("room_id", "")).strip()
        if not room_id:
            return jsonify({"ok": False, "message": "room_id is required."}), 400

        try:
            created = ledger.create_booking(
                room_id,
                str(payload.get("check_in", "")),
                str(payload.get("check_out", "")),
                _current_user_id(),
            )
        except BookingError as error:
            return _error_response(error)
        except ValueError as error:
            return jsonify({"ok": False, "message": str(error)}), 400

        room = ledger.catalog.get_room(created.room_id)
        return jsonify({"ok": True, "booking": _serialize_booking(created, room)}), 201

    @app.get("/api/bookings")
    def list_my_bookings() -> Any:
        user_id = _current_user_id()
        if user_id is None:
            return _error_response(AuthenticationRequired("You must be logged in to view bookings."))

        owned = ledger.list_bookings_for_user(user_id)
        return jsonify(
            {
                "ok": True,
                "bookings": [_serialize_booking(record, _room_or_none(ledger, record.room_id)) for record in owned],
            }
        )

    @app.get("/api/bookings/<booking_id>")
    def get_booking(booking_id: str) -> Any:
        user_id = _current_user_id()
        if user_id is None:
            return _error_response(AuthenticationRequired("You must be logged in to view bookings."))

        try:
            record = ledger.get_booking(booking_id)
            if record.user_id != user_id:
                raise NotFound(f"Booking {booking_id!r} does not exist.")
        except BookingError as error:
            return _error_response(error)
        return jsonify({"ok": True, "booking": _serialize_booking(record, _room_or_none(ledger, record.room_id))})

    @app.post("/api/bookings/<booking_id>/cancel")
    def cancel_booking(booking_id: str) -> Any:
        user_id = _current_user_id()
        if user_id is None:
            return _error_response(AuthenticationRequired("You must be logged in to cancel a booking."))

        try:
            cancelled = ledger.cancel_booking(booking_id, user_id)
        except BookingError as error:
            return _error_response(error)
        return jsonify({"ok": True, "booking": _serialize_booking(cancelled, _room_or_none(ledger, cancelled.room_id))})

    return app


def _error_response(error: BookingError) -> Any:
    status = 400
    for error_type, code in _ERROR_STATUS:
        if isinstance(error, error_type):
            status = code
            break
    return jsonify({"ok": False, "error": error.kind, "message": str(error)}), status


def _room_or_none(ledger: ReservationLedger, room_id: str) -> Room | None:
    try:
        return ledger.catalog.get_room(room_id)
    except NotFound:
        return None


def _serialize_booking(record: BookingRecord, room: Room | None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        **record.to_dict(),
        "nights": record.nights,
    }
    if room is not None:
        payload["room"] = room.to_dict()
        payload["total_price"] = room.price * record.nights
    return payload


def main() -> None:
    app = create_app(os.environ.get(DATA_DIR_ENV, "data"))
    app.run(host="127.0.0.1", port=5000, debug=False)


if __name__ == "__main__":
    main()
