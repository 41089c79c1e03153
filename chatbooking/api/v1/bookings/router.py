from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.core.database import get_db
from chatbooking.core.exceptions import BookingError
from chatbooking.schemas.booking import BookingCreate, BookingResponse, BookingStatusUpdate
from chatbooking.services.booking_service import BookingService

router = APIRouter(prefix="/businesses/{business_id}/bookings", tags=["Bookings"])


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    business_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    status_filter: str | None = Query(None, alias="status"),
    limit: int | None = Query(None, ge=1, le=500),
    skip: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List bookings of a business ordered by start time."""
    try:
        return await BookingService(db).list_bookings(
            business_id,
            start_date=start_date,
            end_date=end_date,
            status=status_filter,
            limit=limit,
            skip=skip,
        )
    except BookingError as e:
        raise to_http(e)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    business_id: str,
    request: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book an interval directly.

    Fails with 409 when the interval overlaps a pending or confirmed booking.
    """
    try:
        return await BookingService(db).create_booking(
            business_id=business_id,
            service_id=request.service_id,
            slot_start=request.slot_start,
            slot_end=request.slot_end,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            thread_id=request.thread_id,
        )
    except BookingError as e:
        raise to_http(e)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(business_id: str, booking_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await BookingService(db).get_booking(booking_id, business_id)
    except BookingError as e:
        raise to_http(e)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    business_id: str,
    booking_id: str,
    request: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Set a booking to pending, confirmed or cancelled."""
    try:
        return await BookingService(db).update_status(booking_id, business_id, request.status)
    except BookingError as e:
        raise to_http(e)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(business_id: str, booking_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await BookingService(db).delete_booking(booking_id, business_id)
    except BookingError as e:
        raise to_http(e)
