from pydantic import BaseModel, Field


# ============== Chat Request/Response ==============

class ChatRequest(BaseModel):
    """User message for one booking dialog turn."""
    message: str = Field(..., min_length=1, max_length=2000)
    thread_id: str | None = Field(None, min_length=1, max_length=120)


class OfferedSlot(BaseModel):
    start: str
    end: str


class TurnResponse(BaseModel):
    """Reply for one turn of the booking dialog."""
    thread_id: str
    message: str
    step: str
    requires_input: bool
    booking_created: bool = False
    booking_id: str | None = None
    available_slots: list[OfferedSlot] = []
