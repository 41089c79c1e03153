import asyncio
import logging
import secrets
import uuid
import weakref
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.core.config import settings
from chatbooking.core.database import to_uuid
from chatbooking.core.exceptions import BookingError, NotFoundError, PersistenceError, ValidationError
from chatbooking.models import Business, ConversationMessage
from chatbooking.models.enums import MessageRole
from chatbooking.services.chat_graph import booking_graph
from chatbooking.services.chat_state import BookingSlot, TurnState
from chatbooking.services.extraction import FieldExtractor, get_field_extractor
from chatbooking.services.session_service import SessionService

logger = logging.getLogger(__name__)

# Turns on the same (business, thread) run one at a time within this process
_thread_locks: "weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def _thread_lock(business_id: uuid.UUID, thread_id: str) -> asyncio.Lock:
    key = (str(business_id), thread_id)
    lock = _thread_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _thread_locks[key] = lock
    return lock


def _local_now(tz_name: str) -> datetime:
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo(settings.DEFAULT_TIMEZONE)
    return datetime.now(zone).replace(tzinfo=None)


class BookingDialog:
    """
    Runs one chat turn of the booking dialog against the database.

    Loads the thread's session, runs the LangGraph turn, then saves or
    deletes the session and logs both messages in a single commit.
    """

    def __init__(
        self,
        db: AsyncSession,
        extractor: FieldExtractor | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.extractor = extractor or get_field_extractor()
        self.now = now
        self.sessions = SessionService(db)

    async def _get_business(self, business_id) -> Business:
        result = await self.db.execute(
            select(Business).where(
                Business.id == to_uuid(business_id, "Business"),
                Business.is_active.is_(True),
            )
        )
        business = result.scalar_one_or_none()
        if not business:
            raise NotFoundError(f"Business not found: {business_id}")
        return business

    async def _recent_history(self, business_id: uuid.UUID, thread_id: str) -> list[dict]:
        result = await self.db.execute(
            select(ConversationMessage)
            .where(
                ConversationMessage.business_id == business_id,
                ConversationMessage.thread_id == thread_id,
            )
            .order_by(ConversationMessage.created_at.desc())
            .limit(settings.EXTRACTION_HISTORY_LIMIT)
        )
        rows = list(result.scalars().all())
        return [{"role": m.role, "content": m.content} for m in reversed(rows)]

    def _record(self, business_id: uuid.UUID, thread_id: str, role: MessageRole, content: str) -> None:
        self.db.add(
            ConversationMessage(
                business_id=business_id,
                thread_id=thread_id,
                role=role.value,
                content=content,
            )
        )

    async def process_turn(
        self,
        business_id: str | uuid.UUID,
        message: str,
        thread_id: str | None = None,
    ) -> dict:
        """
        Process one user message and advance the thread's booking dialog.

        Args:
            business_id: UUID of the business being booked
            message: Raw user text
            thread_id: Chat thread; a new one is opened when omitted

        Returns:
            Turn result with message, step, requires_input and, when a booking
            was placed, booking_created and booking_id

        Raises:
            ValidationError: Empty message
            NotFoundError: Unknown business, or service gone at booking time
            ConflictError: The chosen slot was taken before the booking was written
            PersistenceError: The database failed; nothing from this turn is kept
        """
        if not message or not message.strip():
            raise ValidationError("Message must not be empty")
        message = message.strip()
        thread_id = thread_id or f"thr_{secrets.token_hex(8)}"

        business_key = str(business_id)

        try:
            business = await self._get_business(business_id)
            now = self.now() if self.now else _local_now(business.timezone)

            async with _thread_lock(business.id, thread_id):
                result = await self._run_turn(business, thread_id, message, now)
        except BookingError as e:
            await self.db.rollback()
            logger.info(
                "Booking turn aborted",
                extra={"business_id": business_key, "thread_id": thread_id, "error": str(e)},
            )
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Booking turn failed",
                extra={"business_id": business_key, "thread_id": thread_id, "error": str(e)},
            )
            raise PersistenceError("Booking store unavailable") from e

        return {"thread_id": thread_id, **result}

    async def _run_turn(self, business: Business, thread_id: str, message: str, now: datetime) -> dict:
        session = await self.sessions.get_or_create(business.id, thread_id)
        history = await self._recent_history(business.id, thread_id)
        self._record(business.id, thread_id, MessageRole.USER, message)

        state: TurnState = {
            "business_uuid": business.id,
            "thread_id": thread_id,
            "message": message,
            "history": history,
            "stored_step": session.step,
            "today": now.date(),
            "now": now,
            "slot": BookingSlot.from_dict(session.slot),
            "response": None,
            "requires_input": True,
            "available_slots": [],
            "booking_created": False,
            "booking_id": None,
        }

        result = await booking_graph.ainvoke(
            state,
            config={"configurable": {"db": self.db, "extractor": self.extractor}},
        )

        if result.get("booking_created"):
            await self.sessions.delete(business.id, thread_id)
        else:
            await self.sessions.save(session, result["step"], result["slot"].to_dict())

        self._record(business.id, thread_id, MessageRole.ASSISTANT, result["response"])
        await self.db.commit()

        logger.info(
            "Booking turn processed",
            extra={
                "business_id": str(business.id),
                "thread_id": thread_id,
                "step": result["step"],
                "booking_id": result.get("booking_id"),
            },
        )

        return {
            "message": result["response"],
            "step": result["step"],
            "requires_input": result.get("requires_input", True),
            "booking_created": result.get("booking_created", False),
            "booking_id": result.get("booking_id"),
            "available_slots": result.get("available_slots") or [],
        }
