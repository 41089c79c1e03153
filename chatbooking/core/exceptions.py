class BookingError(Exception):
    """Base class for errors surfaced to the caller of a booking operation."""


class ValidationError(BookingError):
    """Raised when a request is missing required fields or carries invalid values."""


class NotFoundError(BookingError):
    """Raised when a service, booking or business is absent or belongs to another business."""


class ConflictError(BookingError):
    """Raised when the requested time range is no longer free at write time."""


class PersistenceError(BookingError):
    """Raised when the store is unreachable or rejects a write for a non-domain reason."""


class ExtractionError(RuntimeError):
    """Raised when the language model call fails, times out or returns unparsable content."""
