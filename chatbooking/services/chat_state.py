import uuid
from dataclasses import dataclass, asdict, fields, replace
from datetime import date, datetime
from typing import TypedDict

from chatbooking.models.enums import BookingStep


@dataclass
class BookingSlot:
    """
    Booking fields collected so far in a dialog.

    date is ISO YYYY-MM-DD, time is 24-hour HH:MM, start/end are the ISO
    datetimes of the matched slot in the business's wall-clock time.
    """
    service_id: str | None = None
    service_name: str | None = None
    date: str | None = None
    time: str | None = None
    start: str | None = None
    end: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    confirmed: bool = False

    @classmethod
    def from_dict(cls, data: dict | None) -> "BookingSlot":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known})

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v not in (None, False)}

    def copy(self) -> "BookingSlot":
        return replace(self)

    def set_service(self, service_id: str, service_name: str) -> bool:
        """Select a service; switching from another one invalidates date, time and the matched slot."""
        if self.service_id == service_id:
            return False
        if self.service_id is not None:
            self.date = None
            self.time = None
        self.service_id = service_id
        self.service_name = service_name
        self.clear_match()
        return True

    def set_date(self, value: str) -> bool:
        if self.date == value:
            return False
        self.date = value
        self.clear_match()
        return True

    def set_time(self, value: str) -> bool:
        if self.time == value:
            return False
        self.time = value
        self.clear_match()
        return True

    def set_contact(self, name: str | None = None, phone: str | None = None) -> bool:
        changed = False
        if name and name != self.customer_name:
            self.customer_name = name
            changed = True
        if phone and phone != self.customer_phone:
            self.customer_phone = phone
            changed = True
        if changed:
            self.confirmed = False
        return changed

    def clear_match(self) -> None:
        self.start = None
        self.end = None
        self.confirmed = False

    @property
    def start_at(self) -> datetime | None:
        return datetime.fromisoformat(self.start) if self.start else None

    @property
    def end_at(self) -> datetime | None:
        return datetime.fromisoformat(self.end) if self.end else None


# Ordered table: the first unset field decides the step
STEP_REQUIREMENTS = [
    ("service_id", BookingStep.SERVICE),
    ("date", BookingStep.DATE),
    ("start", BookingStep.TIME),
    ("customer_name", BookingStep.NAME),
    ("customer_phone", BookingStep.PHONE),
    ("confirmed", BookingStep.CONFIRM),
]


def next_step(slot: BookingSlot) -> BookingStep:
    """Pure and total: the step that collects the first missing field."""
    for field_name, step in STEP_REQUIREMENTS:
        if not getattr(slot, field_name):
            return step
    return BookingStep.COMPLETE


class TurnState(TypedDict, total=False):
    """
    State passed between the booking dialog nodes for one turn.
    LangGraph passes this state between nodes, and each node can read/update it.
    """

    # === Identifiers ===
    business_uuid: uuid.UUID
    thread_id: str

    # === Inputs ===
    message: str
    history: list[dict]
    stored_step: str
    today: date
    now: datetime

    # === Dialog progress ===
    slot: BookingSlot
    extracted: dict
    changed: bool

    # === Turn result ===
    response: str | None
    step: str
    requires_input: bool
    available_slots: list[dict]
    booking_created: bool
    booking_id: str | None
