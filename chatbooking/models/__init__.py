# chatbooking/models/__init__.py

from chatbooking.core.database import Base

from chatbooking.models.business import Business
from chatbooking.models.service import Service
from chatbooking.models.booking import Booking
from chatbooking.models.booking_session import BookingSession
from chatbooking.models.conversation_message import ConversationMessage
from chatbooking.models.schedule import BusinessHours, Blackout

__all__ = [
    "Base",
    "Business",
    "Service",
    "Booking",
    "BookingSession",
    "ConversationMessage",
    "BusinessHours",
    "Blackout",
]
