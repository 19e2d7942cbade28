class BookingError(Exception):
    """Base class for conditions the ledger reports back to its caller."""

    kind = "booking_error"


class InvalidRange(BookingError, ValueError):
    kind = "invalid_range"


class NotFound(BookingError, LookupError):
    kind = "not_found"


class UnitNotFound(NotFound):
    kind = "unit_not_found"


class NotAvailable(BookingError):
    kind = "not_available"


class Forbidden(BookingError):
    kind = "forbidden"


class AuthenticationRequired(BookingError):
    kind = "authentication_required"


class ReservationStorageError(RuntimeError):
    pass


class MalformedRecordError(ValueError):
    pass
