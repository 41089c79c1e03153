from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.api.v1.admin.helpers import get_business_or_404
from chatbooking.core.database import get_db
from chatbooking.core.exceptions import BookingError
from chatbooking.models import Business
from chatbooking.schemas.business import BusinessCreate, BusinessResponse, BusinessUpdate

router = APIRouter()


@router.get("", response_model=list[BusinessResponse])
async def list_businesses(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Business).order_by(Business.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
async def create_business(request: BusinessCreate, db: AsyncSession = Depends(get_db)):
    """Create a business. Slugs are unique."""
    business = Business(
        business_name=request.business_name,
        slug=request.slug,
        timezone=request.timezone,
        is_active=True,
    )
    db.add(business)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Slug already exists: {request.slug}")
    return business


@router.get("/{business_id}", response_model=BusinessResponse)
async def get_business(business_id: str, db: AsyncSession = Depends(get_db)):
    try:
        return await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)


@router.patch("/{business_id}", response_model=BusinessResponse)
async def update_business(business_id: str, request: BusinessUpdate, db: AsyncSession = Depends(get_db)):
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    for key, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(business, key, value)

    await db.commit()
    return business
