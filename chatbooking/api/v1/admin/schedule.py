from datetime import datetime, time

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.api.v1.admin.helpers import get_business_or_404
from chatbooking.core.database import get_db, to_uuid
from chatbooking.core.exceptions import BookingError
from chatbooking.models import BusinessHours, Blackout
from chatbooking.schemas.business import BlackoutCreate, BlackoutResponse

router = APIRouter()


# ============== Request/Response Models ==============

class BusinessHoursItem(BaseModel):
    day_of_week: int  # 0=Monday, 6=Sunday
    day_name: str
    open_time: str | None  # "09:00"
    close_time: str | None  # "17:00"
    is_closed: bool


class BusinessHoursUpdate(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: str | None = None  # "09:00"
    close_time: str | None = None  # "17:00"
    is_closed: bool = False


class BulkBusinessHoursUpdate(BaseModel):
    hours: list[BusinessHoursUpdate]


# ============== Helper ==============

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def time_to_str(t: time | None) -> str | None:
    if t is None:
        return None
    return t.strftime("%H:%M")


def str_to_time(s: str | None) -> time | None:
    if s is None:
        return None
    try:
        return datetime.strptime(s, "%H:%M").time()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid time, expected HH:MM: {s}")


def _validated(item: BusinessHoursUpdate) -> tuple[time | None, time | None]:
    open_time = str_to_time(item.open_time)
    close_time = str_to_time(item.close_time)
    if not item.is_closed:
        if open_time is None or close_time is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{DAY_NAMES[item.day_of_week]} needs open_time and close_time unless closed",
            )
        if close_time <= open_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{DAY_NAMES[item.day_of_week]} closes before it opens",
            )
    return open_time, close_time


# ============== Business Hours ==============

@router.get("/businesses/{business_id}/hours", response_model=list[BusinessHoursItem])
async def get_business_hours(business_id: str, db: AsyncSession = Depends(get_db)):
    """Get business hours for all 7 days. Days without a record are closed."""
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    result = await db.execute(
        select(BusinessHours)
        .where(BusinessHours.business_id == business.id)
        .order_by(BusinessHours.day_of_week)
    )
    hours_dict = {h.day_of_week: h for h in result.scalars().all()}

    response = []
    for day in range(7):
        h = hours_dict.get(day)
        response.append(BusinessHoursItem(
            day_of_week=day,
            day_name=DAY_NAMES[day],
            open_time=time_to_str(h.open_time) if h else None,
            close_time=time_to_str(h.close_time) if h else None,
            is_closed=(h.is_closed or False) if h else True,
        ))
    return response


@router.put("/businesses/{business_id}/hours", response_model=list[BusinessHoursItem])
async def update_business_hours(
    business_id: str,
    request: BulkBusinessHoursUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Create or replace hours for each day in the request."""
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    days = [item.day_of_week for item in request.hours]
    if len(days) != len(set(days)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Each day may appear only once")

    for item in request.hours:
        open_time, close_time = _validated(item)

        result = await db.execute(
            select(BusinessHours).where(
                BusinessHours.business_id == business.id,
                BusinessHours.day_of_week == item.day_of_week,
            )
        )
        existing = result.scalar_one_or_none()

        if existing:
            existing.open_time = open_time
            existing.close_time = close_time
            existing.is_closed = item.is_closed
        else:
            db.add(BusinessHours(
                business_id=business.id,
                day_of_week=item.day_of_week,
                open_time=open_time,
                close_time=close_time,
                is_closed=item.is_closed,
            ))

    await db.commit()

    return await get_business_hours(business_id, db)


# ============== Blackouts ==============

@router.get("/businesses/{business_id}/blackouts", response_model=list[BlackoutResponse])
async def list_blackouts(business_id: str, db: AsyncSession = Depends(get_db)):
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    result = await db.execute(
        select(Blackout).where(Blackout.business_id == business.id).order_by(Blackout.start_date)
    )
    return result.scalars().all()


@router.post(
    "/businesses/{business_id}/blackouts",
    response_model=BlackoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_blackout(business_id: str, request: BlackoutCreate, db: AsyncSession = Depends(get_db)):
    """Close the business for a day or an inclusive range of days."""
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    blackout = Blackout(
        business_id=business.id,
        start_date=request.start_date,
        end_date=request.end_date,
        reason=request.reason,
    )
    db.add(blackout)
    await db.commit()
    return blackout


@router.delete("/businesses/{business_id}/blackouts/{blackout_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blackout(business_id: str, blackout_id: str, db: AsyncSession = Depends(get_db)):
    try:
        business = await get_business_or_404(db, business_id)
        result = await db.execute(
            delete(Blackout).where(
                Blackout.id == to_uuid(blackout_id, "Blackout"),
                Blackout.business_id == business.id,
            )
        )
    except BookingError as e:
        raise to_http(e)

    if result.rowcount == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Blackout not found: {blackout_id}")
    await db.commit()
