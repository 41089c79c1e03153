from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Literal
from uuid import UUID


# ============== Time Slot Schemas ==============

class TimeSlotResponse(BaseModel):
    """A single time slot."""
    start: datetime
    end: datetime
    available: bool = True


class AvailabilityResponse(BaseModel):
    """Available slots for a service over a date range."""
    service_id: UUID
    start: str
    end: str
    slots: list[TimeSlotResponse]


# ============== Booking Schemas ==============

class BookingCreate(BaseModel):
    """Create a booking directly, outside the chat dialog."""
    service_id: UUID
    slot_start: datetime
    slot_end: datetime
    customer_name: str = Field(..., min_length=1, max_length=120)
    customer_phone: str = Field(..., min_length=6, max_length=40)
    thread_id: str | None = Field(None, max_length=120)

    @model_validator(mode="after")
    def check_range(self):
        if self.slot_end <= self.slot_start:
            raise ValueError("slot_end must be after slot_start")
        return self


class BookingStatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "cancelled"]


class BookingResponse(BaseModel):
    """Booking as returned by the API."""
    id: UUID
    business_id: UUID
    service_id: UUID
    thread_id: str | None = None
    status: str
    slot_start: datetime
    slot_end: datetime
    customer_name: str
    customer_phone: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
