import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbooking.api.v1.chat.router import router as chat_router
from chatbooking.api.v1.bookings.router import router as bookings_router
from chatbooking.api.v1.public.router import router as public_router
from chatbooking.api.v1.admin.businesses import router as admin_businesses_router
from chatbooking.api.v1.admin.services import router as admin_services_router
from chatbooking.api.v1.admin.schedule import router as admin_schedule_router
from chatbooking.api.v1.admin.sessions import router as admin_sessions_router
from chatbooking.core.config import settings


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("business_id", "thread_id", "step", "booking_id", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(
    title="Chat Booking API",
    description="LangGraph-powered appointment booking chatbot with availability engine",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router, prefix="/api/v1")
app.include_router(bookings_router, prefix="/api/v1")
app.include_router(public_router, prefix="/api/v1")
app.include_router(admin_businesses_router, prefix="/api/v1/admin/businesses", tags=["Admin Businesses"])
app.include_router(admin_services_router, prefix="/api/v1/admin", tags=["Admin Services"])
app.include_router(admin_schedule_router, prefix="/api/v1/admin", tags=["Admin Schedule"])
app.include_router(admin_sessions_router, prefix="/api/v1/admin", tags=["Admin Sessions"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
