from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.core.database import get_db, to_uuid
from chatbooking.core.exceptions import BookingError
from chatbooking.models import ConversationMessage
from chatbooking.schemas.chat import ChatRequest, TurnResponse
from chatbooking.services.chat_service import BookingDialog
from chatbooking.services.extraction import FieldExtractor, get_field_extractor

router = APIRouter(prefix="/chat", tags=["Chat"])


# ==================== SEND MESSAGE ====================

@router.post("/{business_id}/messages", response_model=TurnResponse)
async def send_message(
    business_id: str,
    request: ChatRequest,
    db: AsyncSession = Depends(get_db),
    extractor: FieldExtractor = Depends(get_field_extractor),
):
    """
    Send one message of a booking conversation and get the next prompt.

    Path parameters:
    - business_id: UUID of the business being booked

    Request body:
    - message: What the customer typed
    - thread_id: Omit on the first message; reuse the returned value afterwards

    Returns:
    - message: Reply to show the customer
    - step: Dialog step the conversation is now waiting on
    - requires_input: False once the booking has been placed
    - booking_created / booking_id: Set on the turn that places the booking
    - available_slots: Offered start/end pairs while choosing a time

    Example:
        POST /api/v1/chat/{business_id}/messages
        {"message": "I'd like a haircut tomorrow at 3pm"}
    """
    try:
        dialog = BookingDialog(db, extractor=extractor)
        return await dialog.process_turn(business_id, request.message, request.thread_id)
    except BookingError as e:
        raise to_http(e)


# ==================== THREAD HISTORY ====================

@router.get("/{business_id}/threads/{thread_id}/messages", response_model=list[dict])
async def get_thread_messages(
    business_id: str,
    thread_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get all messages of a chat thread, oldest first."""
    try:
        business_uuid = to_uuid(business_id, "Business")
    except BookingError as e:
        raise to_http(e)

    result = await db.execute(
        select(ConversationMessage)
        .where(
            ConversationMessage.business_id == business_uuid,
            ConversationMessage.thread_id == thread_id,
        )
        .order_by(ConversationMessage.created_at)
    )
    messages = result.scalars().all()
    if not messages:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Thread not found: {thread_id}")

    return [
        {
            "role": m.role,
            "content": m.content,
            "created_at": m.created_at.isoformat() if m.created_at else None,
        }
        for m in messages
    ]
