import uuid
from dataclasses import dataclass, field
from datetime import datetime, date, time, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from chatbooking.core.database import to_uuid
from chatbooking.core.exceptions import NotFoundError, ValidationError
from chatbooking.models import Booking, Service, BusinessHours, Blackout
from chatbooking.models.enums import ACTIVE_BOOKING_STATUSES


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    available: bool = True

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available": self.available,
        }


@dataclass
class ScheduleFacts:
    """Read-only inputs to slot generation for one business and date range."""
    hours: dict[int, BusinessHours] = field(default_factory=dict)
    blackouts: list[Blackout] = field(default_factory=list)
    bookings: list[tuple[datetime, datetime]] = field(default_factory=list)


def _overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def _blacked_out(slot_start: datetime, slot_end: datetime, blackouts: list[Blackout]) -> bool:
    for blackout in blackouts:
        window_start = datetime.combine(blackout.start_date, time.min)
        window_end = datetime.combine(blackout.last_date + timedelta(days=1), time.min)
        if _overlaps(slot_start, slot_end, window_start, window_end):
            return True
    return False


def generate_slots(
    duration_minutes: int,
    buffer_minutes: int,
    facts: ScheduleFacts,
    start_date: date,
    end_date: date,
) -> list[TimeSlot]:
    """
    Walk every day of [start_date, end_date] and cut the opening hours into slots.

    Slots start every duration + buffer minutes from opening time and never
    run past closing time. Each slot is flagged unavailable when a blackout
    covers it or an active booking overlaps it.

    Returns:
        Slots in chronological order, available or not
    """
    if duration_minutes <= 0:
        raise ValidationError("Service duration must be positive")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=duration_minutes + max(buffer_minutes, 0))

    slots: list[TimeSlot] = []
    current_date = start_date
    while current_date <= end_date:
        hours = facts.hours.get(current_date.weekday())
        if hours and not hours.is_closed and hours.open_time and hours.close_time:
            cursor = datetime.combine(current_date, hours.open_time)
            closing = datetime.combine(current_date, hours.close_time)

            while cursor + duration <= closing:
                slot_end = cursor + duration
                available = not _blacked_out(cursor, slot_end, facts.blackouts) and not any(
                    _overlaps(cursor, slot_end, b_start, b_end) for b_start, b_end in facts.bookings
                )
                slots.append(TimeSlot(start=cursor, end=slot_end, available=available))
                cursor += step

        current_date += timedelta(days=1)

    return slots


async def get_active_service(db: AsyncSession, business_id: uuid.UUID, service_id) -> Service:
    """Load an enabled service that belongs to the business or raise NotFoundError."""
    service_uuid = to_uuid(service_id, "Service")
    result = await db.execute(
        select(Service).where(
            Service.id == service_uuid,
            Service.business_id == business_id,
            Service.is_active.is_(True),
        )
    )
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundError(f"Service not found: {service_id}")
    return service


class SlotService:
    """
    Service for computing time slot availability.

    Handles:
    - Loading business hours, blackouts and active bookings for a range
    - Generating slots for a service over that range
    - Checking whether a specific interval is still free
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_schedule_facts(
        self,
        business_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> ScheduleFacts:
        """Read hours, blackouts and active bookings touching the date range."""

        result = await self.db.execute(
            select(BusinessHours).where(BusinessHours.business_id == business_id)
        )
        hours = {row.day_of_week: row for row in result.scalars().all()}

        # A blackout without end date only covers its start date
        result = await self.db.execute(
            select(Blackout).where(
                Blackout.business_id == business_id,
                Blackout.start_date <= end_date,
            )
        )
        blackouts = [b for b in result.scalars().all() if b.last_date >= start_date]

        range_start = datetime.combine(start_date, time.min)
        range_end = datetime.combine(end_date + timedelta(days=1), time.min)
        result = await self.db.execute(
            select(Booking.slot_start, Booking.slot_end).where(
                Booking.business_id == business_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.slot_start < range_end,
                Booking.slot_end > range_start,
            )
        )
        bookings = [(row.slot_start, row.slot_end) for row in result.all()]

        return ScheduleFacts(hours=hours, blackouts=blackouts, bookings=bookings)

    async def get_slots(
        self,
        business_id: str | uuid.UUID,
        service_id: str | uuid.UUID,
        start_date: date,
        end_date: date,
        only_available: bool = True,
    ) -> list[TimeSlot]:
        """
        Get time slots for a service over an inclusive date range.

        Args:
            business_id: UUID of the business
            service_id: UUID of the service
            start_date: First day of the range
            end_date: Last day of the range
            only_available: Drop slots that are blacked out or booked

        Returns:
            Chronologically ordered slots

        Raises:
            NotFoundError: Service missing, disabled or owned by another business
        """
        business_uuid = to_uuid(business_id, "Business")
        service = await get_active_service(self.db, business_uuid, service_id)

        if end_date < start_date:
            return []

        facts = await self.load_schedule_facts(business_uuid, start_date, end_date)
        slots = generate_slots(
            service.duration_minutes,
            service.buffer_minutes,
            facts,
            start_date,
            end_date,
        )
        if only_available:
            slots = [slot for slot in slots if slot.available]
        return slots

    async def has_overlapping_booking(
        self,
        business_id: uuid.UUID,
        slot_start: datetime,
        slot_end: datetime,
    ) -> bool:
        result = await self.db.execute(
            select(Booking.id).where(
                Booking.business_id == business_id,
                Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                Booking.slot_start < slot_end,
                Booking.slot_end > slot_start,
            ).limit(1)
        )
        return result.first() is not None

    async def is_slot_available(
        self,
        business_id: str | uuid.UUID,
        service_id: str | uuid.UUID,
        slot_start: datetime,
        slot_end: datetime,
    ) -> bool:
        """
        Check if an interval can still be booked for a service.

        Returns:
            False if the service is unknown, disabled or foreign to the business,
            or if any pending or confirmed booking overlaps [slot_start, slot_end)
        """
        business_uuid = to_uuid(business_id, "Business")
        try:
            await get_active_service(self.db, business_uuid, service_id)
        except NotFoundError:
            return False

        return not await self.has_overlapping_booking(business_uuid, slot_start, slot_end)
