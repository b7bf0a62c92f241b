from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.config import ProductType


class CustomerCreate(BaseModel):
    external_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    product_type: ProductType = ProductType.USER
    stripe_account: str | None = Field(default=None, max_length=255)
    seats: int = Field(default=1, ge=1)
    trial_ends_at: datetime | None = None


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    seats: int | None = Field(default=None, ge=1)


class CustomerResponse(BaseModel):
    id: UUID
    external_id: str
    name: str
    email: str | None
    product_type: ProductType
    stripe_id: str | None
    seats: int
    trial_ends_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
