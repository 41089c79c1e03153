from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.api.errors import to_http
from chatbooking.api.v1.admin.helpers import get_business_or_404
from chatbooking.core.database import get_db, to_uuid
from chatbooking.core.exceptions import BookingError, NotFoundError
from chatbooking.models import Service
from chatbooking.schemas.business import ServiceCreate, ServiceResponse, ServiceUpdate

router = APIRouter()


async def _get_service(db: AsyncSession, business_id: str, service_id: str) -> Service:
    business = await get_business_or_404(db, business_id)
    result = await db.execute(
        select(Service).where(
            Service.id == to_uuid(service_id, "Service"),
            Service.business_id == business.id,
        )
    )
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundError(f"Service not found: {service_id}")
    return service


@router.get("/businesses/{business_id}/services", response_model=list[ServiceResponse])
async def list_services(business_id: str, db: AsyncSession = Depends(get_db)):
    """List all services for a business, disabled ones included."""
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    result = await db.execute(
        select(Service)
        .where(Service.business_id == business.id)
        .order_by(Service.created_at, Service.service_name)
    )
    return result.scalars().all()


@router.post(
    "/businesses/{business_id}/services",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(business_id: str, request: ServiceCreate, db: AsyncSession = Depends(get_db)):
    """Create a new service for a business."""
    try:
        business = await get_business_or_404(db, business_id)
    except BookingError as e:
        raise to_http(e)

    service = Service(
        business_id=business.id,
        service_name=request.service_name,
        duration_minutes=request.duration_minutes,
        buffer_minutes=request.buffer_minutes,
        is_active=True,
    )
    db.add(service)
    await db.commit()
    return service


@router.patch("/businesses/{business_id}/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    business_id: str,
    service_id: str,
    request: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a service; is_active=false disables it for new bookings."""
    try:
        service = await _get_service(db, business_id, service_id)
    except BookingError as e:
        raise to_http(e)

    for key, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(service, key, value)

    await db.commit()
    return service


@router.delete("/businesses/{business_id}/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(business_id: str, service_id: str, db: AsyncSession = Depends(get_db)):
    """Disable a service. Existing bookings keep referring to it."""
    try:
        service = await _get_service(db, business_id, service_id)
    except BookingError as e:
        raise to_http(e)

    service.is_active = False
    await db.commit()
