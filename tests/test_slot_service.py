"""Tests for availability lookups against the database."""

from datetime import date, datetime

import pytest

from chatbooking.core.exceptions import NotFoundError
from chatbooking.models import Business
from chatbooking.services.slot_service import SlotService

MONDAY = date(2030, 3, 4)


class TestGetSlots:

    async def test_lists_available_slots_for_range(self, db, business, service):
        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY)

        assert len(slots) == 16
        assert all(s.available for s in slots)

    async def test_booked_slot_is_dropped(self, db, business, service, add_booking):
        await add_booking(service, datetime(2030, 3, 4, 9, 0), datetime(2030, 3, 4, 9, 30))

        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY)

        assert len(slots) == 15
        assert datetime(2030, 3, 4, 9, 0) not in [s.start for s in slots]

    async def test_cancelled_booking_frees_slot(self, db, business, service, add_booking):
        await add_booking(service, datetime(2030, 3, 4, 9, 0), datetime(2030, 3, 4, 9, 30), status="cancelled")

        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY)

        assert len(slots) == 16

    async def test_unfiltered_listing_keeps_flags(self, db, business, service, add_booking):
        await add_booking(service, datetime(2030, 3, 4, 9, 0), datetime(2030, 3, 4, 9, 30))

        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY, only_available=False)

        assert len(slots) == 16
        assert slots[0].available is False

    async def test_whole_day_blackout_leaves_nothing(self, db, business, service, add_blackout):
        await add_blackout(MONDAY)

        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY)

        assert slots == []

    async def test_blackout_ending_before_range_is_ignored(self, db, business, service, add_blackout):
        await add_blackout(date(2030, 2, 1), date(2030, 3, 1))

        slots = await SlotService(db).get_slots(business.id, service.id, MONDAY, MONDAY)

        assert len(slots) == 16

    async def test_disabled_service_is_not_found(self, db, business, add_service):
        disabled = await add_service(name="Old", active=False)

        with pytest.raises(NotFoundError):
            await SlotService(db).get_slots(business.id, disabled.id, MONDAY, MONDAY)

    async def test_foreign_service_is_not_found(self, db, business, add_service):
        other = Business(slug="other", business_name="Other", timezone="UTC", is_active=True)
        db.add(other)
        await db.commit()
        foreign = await add_service(owner=other)

        with pytest.raises(NotFoundError):
            await SlotService(db).get_slots(business.id, foreign.id, MONDAY, MONDAY)

    async def test_malformed_service_id_is_not_found(self, db, business):
        with pytest.raises(NotFoundError):
            await SlotService(db).get_slots(business.id, "not-a-uuid", MONDAY, MONDAY)


class TestIsSlotAvailable:

    @pytest.mark.parametrize("status,expected", [("pending", False), ("confirmed", False), ("cancelled", True)])
    async def test_overlap_depends_on_status(self, db, business, service, add_booking, status, expected):
        await add_booking(service, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 11, 0), status=status)

        available = await SlotService(db).is_slot_available(
            business.id, service.id, datetime(2030, 3, 4, 10, 30), datetime(2030, 3, 4, 11, 0)
        )

        assert available is expected

    async def test_touching_interval_is_available(self, db, business, service, add_booking):
        await add_booking(service, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 11, 0))

        available = await SlotService(db).is_slot_available(
            business.id, service.id, datetime(2030, 3, 4, 11, 0), datetime(2030, 3, 4, 11, 30)
        )

        assert available is True

    async def test_other_service_booking_still_blocks(self, db, business, service, add_service, add_booking):
        other = await add_service(name="Massage", duration=60)
        await add_booking(other, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 11, 0))

        available = await SlotService(db).is_slot_available(
            business.id, service.id, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30)
        )

        assert available is False

    async def test_disabled_service_is_never_available(self, db, business, add_service):
        disabled = await add_service(name="Old", active=False)

        available = await SlotService(db).is_slot_available(
            business.id, disabled.id, datetime(2030, 3, 4, 10, 0), datetime(2030, 3, 4, 10, 30)
        )

        assert available is False
