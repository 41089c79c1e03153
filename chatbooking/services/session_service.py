import logging
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from chatbooking.models import BookingSession
from chatbooking.models.enums import BookingStep

logger = logging.getLogger(__name__)


class SessionService:
    """Persistence for in-flight booking dialogs, one row per (business, thread)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, business_id: uuid.UUID, thread_id: str) -> BookingSession | None:
        result = await self.db.execute(
            select(BookingSession).where(
                BookingSession.business_id == business_id,
                BookingSession.thread_id == thread_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, business_id: uuid.UUID, thread_id: str) -> BookingSession:
        """Load the thread's session or start a fresh one at the service step."""
        session = await self.get(business_id, thread_id)
        if session is None:
            session = BookingSession(
                business_id=business_id,
                thread_id=thread_id,
                step=BookingStep.SERVICE.value,
                slot={},
            )
            self.db.add(session)
        return session

    async def save(self, session: BookingSession, step: str, slot: dict) -> BookingSession:
        """Write step and slot back. The caller commits."""
        session.step = step
        # Reassign a fresh dict so the JSON column is flagged dirty
        session.slot = dict(slot)
        await self.db.flush()
        return session

    async def delete(self, business_id: uuid.UUID, thread_id: str) -> None:
        await self.db.execute(
            delete(BookingSession).where(
                BookingSession.business_id == business_id,
                BookingSession.thread_id == thread_id,
            )
        )
        logger.info(
            "Booking session completed",
            extra={"business_id": str(business_id), "thread_id": thread_id},
        )

    async def purge_stale(self, older_than: timedelta) -> int:
        """
        Delete sessions not touched for longer than older_than.

        Returns:
            Number of sessions removed
        """
        cutoff = datetime.now(timezone.utc) - older_than
        result = await self.db.execute(
            delete(BookingSession).where(BookingSession.updated_at < cutoff)
        )
        await self.db.commit()
        logger.info("Stale booking sessions purged", extra={"reason": f"removed={result.rowcount}"})
        return result.rowcount
