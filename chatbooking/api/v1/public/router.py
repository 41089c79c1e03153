from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.core.config import settings
from chatbooking.core.database import get_db
from chatbooking.core.exceptions import BookingError, ValidationError
from chatbooking.schemas.booking import AvailabilityResponse
from chatbooking.services.slot_service import SlotService

router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/{business_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    business_id: str,
    service_id: str,
    start: date,
    end: date,
    db: AsyncSession = Depends(get_db),
):
    """
    Get bookable slots for a service.

    Query parameters:
    - service_id: UUID of the service
    - start / end: Inclusive date range (YYYY-MM-DD), at most MAX_AVAILABILITY_RANGE_DAYS long
    """
    try:
        if end < start:
            raise ValidationError("end must not be before start")
        if (end - start).days + 1 > settings.MAX_AVAILABILITY_RANGE_DAYS:
            raise ValidationError(f"Date range must not exceed {settings.MAX_AVAILABILITY_RANGE_DAYS} days")

        slots = await SlotService(db).get_slots(business_id, service_id, start, end)
    except BookingError as e:
        raise to_http(e)

    return {
        "service_id": service_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "slots": [slot.to_dict() for slot in slots],
    }
