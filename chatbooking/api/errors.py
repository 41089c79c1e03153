from fastapi import HTTPException, status

from chatbooking.core.exceptions import (
    BookingError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http(error: BookingError) -> HTTPException:
    """Map a domain error onto the matching HTTP status."""
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
