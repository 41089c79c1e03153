from datetime import date, datetime, time, timedelta

from langchain_core.runnables import RunnableConfig
from sqlalchemy import select

from chatbooking.core.config import settings
from chatbooking.core.exceptions import NotFoundError
from chatbooking.models import Service
from chatbooking.models.enums import BookingStep
from chatbooking.services.booking_service import BookingService
from chatbooking.services.chat_state import TurnState, next_step
from chatbooking.services.field_parsers import (
    is_affirmative,
    match_service,
    parse_date,
    parse_name,
    parse_phone,
    parse_time,
)
from chatbooking.services.slot_service import SlotService, TimeSlot, get_active_service

HOUR_TOLERANCE = 1
MINUTE_TOLERANCE = 30

DATE_PROMPT = (
    "When would you like to book? Please provide a date "
    "(e.g., 'tomorrow', 'December 25', or 'next Monday')."
)


def format_time(value: datetime) -> str:
    return value.strftime("%I:%M %p").lstrip("0")


def format_date(value: date) -> str:
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


def _ask(state: TurnState, step: BookingStep, message: str, **extra) -> TurnState:
    state["response"] = message
    state["step"] = step.value
    state["requires_input"] = True
    state.update(extra)
    return state


async def _enabled_services(db, business_id) -> list[Service]:
    result = await db.execute(
        select(Service)
        .where(Service.business_id == business_id, Service.is_active.is_(True))
        .order_by(Service.created_at, Service.service_name)
    )
    return list(result.scalars().all())


def find_matching_slot(slots: list[TimeSlot], hour: int, minute: int) -> TimeSlot | None:
    """
    Closest available slot within an hour and half an hour of minutes
    of the requested time.
    """
    wanted = hour * 60 + minute
    best = None
    for slot in slots:
        if not slot.available:
            continue
        if abs(slot.start.hour - hour) > HOUR_TOLERANCE or abs(slot.start.minute - minute) > MINUTE_TOLERANCE:
            continue
        distance = abs(slot.start.hour * 60 + slot.start.minute - wanted)
        if best is None or distance < best[0]:
            best = (distance, slot)
    return best[1] if best else None


# ============== NODE 1: Extract fields ==============

async def extract_fields_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """Ask the configured extractor for whatever fields the message carries."""
    extractor = config["configurable"]["extractor"]
    state["extracted"] = await extractor.extract(
        state["message"],
        state["slot"].to_dict(),
        state.get("history", []),
        state["today"],
    )
    return state


# ============== NODE 2: Merge fields into the slot ==============

async def merge_fields_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """
    Merge extracted values. A different service clears date and time;
    a different date or time clears the matched slot.
    """
    db = config["configurable"]["db"]
    slot = state["slot"]
    extracted = state.get("extracted") or {}
    changed = False

    service_name = extracted.get("service_name")
    if service_name and slot.service_id and service_name.lower() != (slot.service_name or "").lower():
        services = await _enabled_services(db, state["business_uuid"])
        service = match_service(service_name, services)
        if service:
            changed |= slot.set_service(str(service.id), service.service_name)

    if extracted.get("date"):
        changed |= slot.set_date(extracted["date"])
    if extracted.get("time"):
        changed |= slot.set_time(extracted["time"])
    changed |= slot.set_contact(extracted.get("customer_name"), extracted.get("customer_phone"))

    state["changed"] = changed
    return state


# ============== Router ==============

def route_step(state: TurnState) -> str:
    """Stop once a node produced a reply, otherwise hand over to the next unmet step."""
    if state.get("response"):
        return "end"
    return f"{next_step(state['slot']).value}_node"


# ============== NODE 3: Service ==============

async def service_node(state: TurnState, config: RunnableConfig) -> TurnState:
    db = config["configurable"]["db"]
    slot = state["slot"]
    services = await _enabled_services(db, state["business_uuid"])

    if not services:
        return _ask(state, BookingStep.SERVICE, "Sorry, no services are available at the moment.")

    if len(services) == 1:
        slot.set_service(str(services[0].id), services[0].service_name)
        return state

    requested = (state.get("extracted") or {}).get("service_name")
    service = match_service(requested, services) if requested else None
    if service is None:
        service = match_service(state["message"], services)

    if service:
        slot.set_service(str(service.id), service.service_name)
        return state

    lines = "\n".join(
        f"{i}. {s.service_name} ({s.duration_minutes} minutes)" for i, s in enumerate(services, start=1)
    )
    return _ask(
        state,
        BookingStep.SERVICE,
        f"Which service would you like to book?\n\n{lines}\n\nPlease reply with the service name or number.",
    )


# ============== NODE 4: Date ==============

async def date_node(state: TurnState, config: RunnableConfig) -> TurnState:
    slot = state["slot"]
    parsed = parse_date(state["message"], state["today"])
    if parsed:
        slot.set_date(parsed.isoformat())
        return state
    return _ask(state, BookingStep.DATE, DATE_PROMPT)


# ============== NODE 5: Time ==============

async def time_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """
    Offer or match slots on the requested day.

    Availability is looked up for a window starting at the requested day so
    that a fully booked day can point at the next open one.
    """
    db = config["configurable"]["db"]
    slot = state["slot"]
    business_id = state["business_uuid"]

    try:
        requested = date.fromisoformat(slot.date)
    except (TypeError, ValueError):
        slot.date = None
        slot.clear_match()
        return _ask(state, BookingStep.DATE, DATE_PROMPT)

    if requested < state["today"]:
        slot.date = None
        slot.clear_match()
        return _ask(state, BookingStep.DATE, "That date has already passed. Please choose another date.")

    try:
        await get_active_service(db, business_id, slot.service_id)
    except NotFoundError:
        # Service was disabled mid-dialog; the service step lists what is left
        slot.service_id = None
        slot.service_name = None
        slot.date = None
        slot.time = None
        slot.clear_match()
        return state

    window_end = requested + timedelta(days=max(settings.AVAILABILITY_LOOKAHEAD_DAYS, 1) - 1)
    slots = await SlotService(db).get_slots(business_id, slot.service_id, requested, window_end)
    slots = [s for s in slots if s.start > state["now"]]
    day_slots = [s for s in slots if s.start.date() == requested]

    if not day_slots:
        later = next((s for s in slots if s.start.date() > requested), None)
        message = f"Sorry, there are no available slots for {format_date(requested)}."
        if later:
            message += f" The next available date is {format_date(later.start.date())}."
        message += " Would you like to choose a different date?"
        slot.date = None
        slot.time = None
        slot.clear_match()
        return _ask(state, BookingStep.DATE, message)

    wanted = parse_time(slot.time) if slot.time else parse_time(state["message"])
    match = find_matching_slot(day_slots, *wanted) if wanted else None

    if match:
        slot.time = match.start.strftime("%H:%M")
        slot.start = match.start.isoformat()
        slot.end = match.end.isoformat()
        return state

    offered = day_slots[: settings.MAX_OFFERED_SLOTS]
    times = "\n".join(f"{i}. {format_time(s.start)}" for i, s in enumerate(offered, start=1))
    intro = "Here are available time slots"
    if wanted:
        intro = f"Sorry, {format_time(datetime.combine(requested, time(*wanted)))} is not available. {intro}"
    slot.time = None
    return _ask(
        state,
        BookingStep.TIME,
        f"{intro} on {format_date(requested)}:\n\n{times}\n\nPlease choose a time.",
        available_slots=[{"start": s.start.isoformat(), "end": s.end.isoformat()} for s in offered],
    )


# ============== NODE 6: Name ==============

async def name_node(state: TurnState, config: RunnableConfig) -> TurnState:
    # A bare reply only counts as a name when the name was asked for
    name = parse_name(state["message"], bare=state.get("stored_step") == BookingStep.NAME.value)
    if name:
        state["slot"].set_contact(name=name)
        return state
    return _ask(state, BookingStep.NAME, "What's your name?")


# ============== NODE 7: Phone ==============

async def phone_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """
    Read the raw message only when it answers the phone prompt. Numbers given
    earlier arrive through the extractor.
    """
    phone = parse_phone(state["message"]) if state.get("stored_step") == BookingStep.PHONE.value else None
    if phone:
        state["slot"].set_contact(phone=phone)
        return state
    return _ask(state, BookingStep.PHONE, "What's your phone number?")


# ============== NODE 8: Confirm ==============

async def confirm_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """
    An affirmative only counts once the summary has been shown and nothing
    changed in this turn.
    """
    slot = state["slot"]
    if (
        state.get("stored_step") == BookingStep.CONFIRM.value
        and not state.get("changed")
        and is_affirmative(state["message"])
    ):
        slot.confirmed = True
        return state

    summary = (
        "Please confirm your booking:\n\n"
        f"Service: {slot.service_name}\n"
        f"Date: {format_date(date.fromisoformat(slot.date))}\n"
        f"Time: {format_time(slot.start_at)}\n"
        f"Name: {slot.customer_name}\n"
        f"Phone: {slot.customer_phone}\n\n"
        'Reply "yes" or "confirm" to complete the booking.'
    )
    return _ask(state, BookingStep.CONFIRM, summary)


# ============== NODE 9: Complete ==============

async def complete_node(state: TurnState, config: RunnableConfig) -> TurnState:
    """Create the booking without committing; the caller owns the transaction."""
    db = config["configurable"]["db"]
    slot = state["slot"]

    booking = await BookingService(db).create_booking(
        business_id=state["business_uuid"],
        service_id=slot.service_id,
        slot_start=slot.start_at,
        slot_end=slot.end_at,
        customer_name=slot.customer_name,
        customer_phone=slot.customer_phone,
        thread_id=state["thread_id"],
        commit=False,
    )

    state["response"] = (
        f"Great! Your booking is placed. Booking ID: {booking.id}. "
        f"We'll see you on {format_date(booking.slot_start.date())} at {format_time(booking.slot_start)}."
    )
    state["step"] = BookingStep.COMPLETE.value
    state["requires_input"] = False
    state["booking_created"] = True
    state["booking_id"] = str(booking.id)
    return state
