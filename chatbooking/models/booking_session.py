import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, JSON, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chatbooking.core.database import Base
from chatbooking.models.business import utcnow


class BookingSession(Base):
    """Progress of an in-flight booking dialog for one chat thread."""
    __tablename__ = "booking_sessions"
    __table_args__ = (
        UniqueConstraint("business_id", "thread_id", name="uq_booking_sessions_thread"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id"), nullable=False)
    thread_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    step: Mapped[str] = mapped_column(String(20), nullable=False, default="service")
    slot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
