from __future__ import annotations

from datetime import date
from pathlib import Path
import traceback

from room_booking import BookingYamlRepository, NotAvailable, ReservationLedger, generate_demo_rooms


def main() -> int:
    print("[INFO] Room Booking Quick Check")
    print("[INFO] Seeding demo rooms and exercising the ledger...")

    repo = BookingYamlRepository("data")
    rooms = repo.seed_rooms(generate_demo_rooms(), overwrite=True)
    print(f"[OK] Rooms seeded: {len(rooms)}")

    ledger = ReservationLedger(repo.load_catalog(), repo)
    check_in, check_out = date(2025, 6, 1), date(2025, 6, 5)

    available = ledger.check_availability(check_in, check_out, sort="price-asc")
    print(f"[OK] Available rooms {check_in}~{check_out}: {', '.join(room.room_id for room in available)}")
    if not available:
        print("[DONE] Nothing available for the sample range.")
        return 0

    target = available[0]
    created = ledger.create_booking(target.room_id, check_in, check_out, "quickcheck")
    print(f"[OK] Booked {created.room_id} as {created.booking_id}")

    try:
        ledger.create_booking(target.room_id, date(2025, 6, 4), date(2025, 6, 6), "quickcheck-2")
        print("[ERROR] Overlapping booking was accepted.")
        return 1
    except NotAvailable:
        print("[OK] Overlapping booking rejected")

    ledger.cancel_booking(created.booking_id, "quickcheck")
    print(f"[OK] Cancelled {created.booking_id}")
    print(f"[OK] Bookings YAML: {Path('data/bookings.yaml').resolve()}")
    print(f"[OK] Event Log YAML: {Path('data/booking_events.yaml').resolve()}")

    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
