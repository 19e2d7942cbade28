from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from .errors import InvalidRange


@dataclass(frozen=True)
class Stay:
    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_in >= self.check_out:
            raise InvalidRange("Check-in date must be earlier than check-out date.")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


def to_stay_date(value: date | datetime | str) -> date:
    """Normalize a date-like value to a calendar day.

    Time-of-day is dropped so that e.g. 2025-06-05T15:00 and 2025-06-05
    compare equal as check-in/check-out days.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("date text must not be empty")
        return datetime.fromisoformat(text).date()
    raise TypeError(f"Unsupported date value: {value!r}")


def normalize_stay(check_in: date | datetime | str, check_out: date | datetime | str) -> Stay:
    return Stay(to_stay_date(check_in), to_stay_date(check_out))


def has_date_overlap(new_in: date, new_out: date, exist_in: date, exist_out: date) -> bool:
    """Return True when two stays share at least one night.

    Stays are half-open ranges: [check_in, check_out)
    so a checkout on the same day as the next check-in does not overlap.
    """
    if new_in >= new_out:
        raise InvalidRange("new_in must be earlier than new_out.")
    if exist_in >= exist_out:
        raise InvalidRange("exist_in must be earlier than exist_out.")

    return new_in < exist_out and exist_in < new_out


def can_reserve(new_in: date, new_out: date, existing_stays: Iterable[Stay]) -> bool:
    """Return True if the requested stay does not overlap any existing stay."""
    if new_in >= new_out:
        raise InvalidRange("new_in must be earlier than new_out.")

    for stay in existing_stays:
        if has_date_overlap(new_in, new_out, stay.check_in, stay.check_out):
            return False
    return True
