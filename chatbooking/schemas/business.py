from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _check_timezone(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value}")
    return value


# ============== Business Schemas ==============

class BusinessCreate(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=1, max_length=120, pattern=r"^[a-z0-9-]+$")
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


class BusinessUpdate(BaseModel):
    business_name: str | None = Field(None, min_length=1, max_length=200)
    timezone: str | None = None
    is_active: bool | None = None

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


class BusinessResponse(BaseModel):
    id: UUID
    slug: str
    business_name: str
    timezone: str
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ============== Service Schemas ==============

class ServiceCreate(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=200)
    duration_minutes: int = Field(60, ge=15)
    buffer_minutes: int = Field(0, ge=0)


class ServiceUpdate(BaseModel):
    service_name: str | None = Field(None, min_length=1, max_length=200)
    duration_minutes: int | None = Field(None, ge=15)
    buffer_minutes: int | None = Field(None, ge=0)
    is_active: bool | None = None


class ServiceResponse(BaseModel):
    id: UUID
    business_id: UUID
    service_name: str
    duration_minutes: int
    buffer_minutes: int
    is_active: bool

    class Config:
        from_attributes = True


# ============== Blackout Schemas ==============

class BlackoutCreate(BaseModel):
    start_date: date
    end_date: date | None = None
    reason: str = Field(..., min_length=1, max_length=200)

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, value, info):
        start = info.data.get("start_date")
        if value is not None and start is not None and value < start:
            raise ValueError("end_date must not be before start_date")
        return value


class BlackoutResponse(BaseModel):
    id: UUID
    business_id: UUID
    start_date: date
    end_date: date | None = None
    reason: str

    class Config:
        from_attributes = True
