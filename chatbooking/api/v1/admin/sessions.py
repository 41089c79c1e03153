from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.core.config import settings
from chatbooking.core.database import get_db
from chatbooking.services.session_service import SessionService

router = APIRouter()


@router.post("/sessions/purge", response_model=dict)
async def purge_stale_sessions(
    older_than_minutes: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete abandoned booking dialogs.

    Uses SESSION_TTL_MINUTES when older_than_minutes is not given.
    """
    minutes = older_than_minutes or settings.SESSION_TTL_MINUTES
    if not minutes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="older_than_minutes is required when SESSION_TTL_MINUTES is not set",
        )

    removed = await SessionService(db).purge_stale(timedelta(minutes=minutes))
    return {"removed": removed}
