import logging
import uuid
from datetime import date, datetime, time, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, delete

from chatbooking.core.config import settings
from chatbooking.core.database import to_uuid
from chatbooking.core.exceptions import ConflictError, NotFoundError, ValidationError
from chatbooking.models import Booking
from chatbooking.models.enums import BookingStatus
from chatbooking.services.slot_service import SlotService, get_active_service

logger = logging.getLogger(__name__)

VALID_STATUSES = {status.value for status in BookingStatus}


class BookingService:
    """
    Service for creating and managing bookings.

    Every creation re-checks availability at write time, independent of
    whatever check produced the offered slot.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.slots = SlotService(db)

    async def create_booking(
        self,
        business_id: str | uuid.UUID,
        service_id: str | uuid.UUID | None,
        slot_start: datetime | None,
        slot_end: datetime | None,
        customer_name: str | None,
        customer_phone: str | None,
        thread_id: str | None = None,
        commit: bool = True,
    ) -> Booking:
        """
        Create a new booking in pending status.

        Args:
            business_id: UUID of the business
            service_id: UUID of a service owned by the business
            slot_start: Wall-clock start in the business timezone
            slot_end: Wall-clock end, strictly after slot_start
            customer_name: Name given by the customer
            customer_phone: Phone number given by the customer
            thread_id: Chat thread the booking came from, if any
            commit: Commit immediately; pass False to let the caller own the transaction

        Returns:
            The persisted Booking

        Raises:
            ValidationError: Missing fields or end not after start
            NotFoundError: Service unknown, disabled or owned by another business
            ConflictError: The interval is no longer free
        """
        missing = [
            name for name, value in (
                ("service_id", service_id),
                ("slot_start", slot_start),
                ("slot_end", slot_end),
                ("customer_name", customer_name),
                ("customer_phone", customer_phone),
            )
            if value in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        if slot_end <= slot_start:
            raise ValidationError("Booking end time must be after start time")

        business_uuid = to_uuid(business_id, "Business")
        service = await get_active_service(self.db, business_uuid, service_id)

        if await self.slots.has_overlapping_booking(business_uuid, slot_start, slot_end):
            logger.info(
                "Booking conflict",
                extra={"business_id": str(business_uuid), "thread_id": thread_id, "reason": "overlap"},
            )
            raise ConflictError("Time slot is not available")

        booking = Booking(
            business_id=business_uuid,
            service_id=service.id,
            thread_id=thread_id,
            status=BookingStatus.PENDING.value,
            slot_start=slot_start,
            slot_end=slot_end,
            customer_name=customer_name.strip(),
            customer_phone=customer_phone.strip(),
        )

        self.db.add(booking)
        try:
            await self.db.flush()
        except IntegrityError:
            # Another writer took the same start between the check and the insert
            await self.db.rollback()
            logger.info(
                "Booking conflict",
                extra={"business_id": str(business_uuid), "thread_id": thread_id, "reason": "unique_start"},
            )
            raise ConflictError("Time slot is not available")

        if commit:
            await self.db.commit()

        logger.info(
            "Booking created",
            extra={"business_id": str(business_uuid), "thread_id": thread_id, "booking_id": str(booking.id)},
        )
        return booking

    async def _get_owned(self, booking_id, business_id) -> Booking:
        booking_uuid = to_uuid(booking_id, "Booking")
        business_uuid = to_uuid(business_id, "Business")
        result = await self.db.execute(
            select(Booking).where(
                Booking.id == booking_uuid,
                Booking.business_id == business_uuid,
            )
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError(f"Booking not found: {booking_id}")
        return booking

    async def get_booking(
        self,
        booking_id: str | uuid.UUID,
        business_id: str | uuid.UUID | None = None,
    ) -> Booking:
        """Look up a booking, optionally scoped to a business."""
        if business_id is not None:
            return await self._get_owned(booking_id, business_id)

        booking = await self.db.get(Booking, to_uuid(booking_id, "Booking"))
        if not booking:
            raise NotFoundError(f"Booking not found: {booking_id}")
        return booking

    async def update_status(
        self,
        booking_id: str | uuid.UUID,
        business_id: str | uuid.UUID,
        status: str,
    ) -> Booking:
        """Move a booking to pending, confirmed or cancelled."""
        if status not in VALID_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}")

        booking = await self._get_owned(booking_id, business_id)
        previous = booking.status
        booking.status = status
        await self.db.commit()

        logger.info(
            "Booking status changed",
            extra={
                "business_id": str(booking.business_id),
                "booking_id": str(booking.id),
                "reason": f"{previous}->{status}",
            },
        )
        return booking

    async def confirm_booking(self, booking_id, business_id) -> Booking:
        return await self.update_status(booking_id, business_id, BookingStatus.CONFIRMED.value)

    async def cancel_booking(self, booking_id, business_id) -> Booking:
        return await self.update_status(booking_id, business_id, BookingStatus.CANCELLED.value)

    async def delete_booking(self, booking_id: str | uuid.UUID, business_id: str | uuid.UUID) -> None:
        result = await self.db.execute(
            delete(Booking).where(
                Booking.id == to_uuid(booking_id, "Booking"),
                Booking.business_id == to_uuid(business_id, "Business"),
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Booking not found: {booking_id}")
        await self.db.commit()
        logger.info("Booking deleted", extra={"business_id": str(business_id), "booking_id": str(booking_id)})

    async def list_bookings(
        self,
        business_id: str | uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[Booking]:
        """
        List a business's bookings ordered by start time.

        Args:
            business_id: UUID of the business
            start_date: Only bookings starting on or after this day
            end_date: Only bookings starting on or before this day
            status: Only bookings with this status
            limit: Page size (defaults to BOOKING_PAGE_SIZE)
            skip: Number of bookings to skip
        """
        if status is not None and status not in VALID_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}")

        query = select(Booking).where(Booking.business_id == to_uuid(business_id, "Business"))
        if start_date:
            query = query.where(Booking.slot_start >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.where(Booking.slot_start < datetime.combine(end_date + timedelta(days=1), time.min))
        if status:
            query = query.where(Booking.status == status)

        query = query.order_by(Booking.slot_start.asc()).offset(skip).limit(limit or settings.BOOKING_PAGE_SIZE)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_bookings_by_thread(self, thread_id: str) -> list[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(Booking.thread_id == thread_id)
            .order_by(Booking.slot_start.asc())
        )
        return list(result.scalars().all())
