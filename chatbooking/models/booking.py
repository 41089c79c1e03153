import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Enum, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from chatbooking.core.database import Base
from chatbooking.models.business import utcnow

_ACTIVE = text("status IN ('pending', 'confirmed')")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_business_range", "business_id", "slot_start", "slot_end"),
        Index("ix_bookings_business_status", "business_id", "status"),
        # Two active bookings may not start at the same moment
        Index(
            "uq_bookings_active_start",
            "business_id",
            "slot_start",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("businesses.id"), nullable=False)
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("services.id"), nullable=False)
    thread_id: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        Enum("pending", "confirmed", "cancelled", name="booking_status_enum"),
        default="pending",
        nullable=False,
    )
    # Wall-clock time in the business timezone
    slot_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    slot_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(120), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(40), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
