import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from chatbooking.core.database import to_uuid
from chatbooking.core.exceptions import NotFoundError
from chatbooking.models import Business


async def get_business_or_404(db: AsyncSession, business_id: str | uuid.UUID) -> Business:
    business = await db.get(Business, to_uuid(business_id, "Business"))
    if not business:
        raise NotFoundError(f"Business not found: {business_id}")
    return business
