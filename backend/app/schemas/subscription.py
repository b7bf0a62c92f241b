from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.subscription import SubscriptionStatus


class SubscriptionCreate(BaseModel):
    plan: str = Field(..., min_length=1, max_length=255)
    coupon: str | None = Field(default=None, max_length=255)


class ApplyCouponRequest(BaseModel):
    coupon: str = Field(..., min_length=1, max_length=255)


class SubscriptionResponse(BaseModel):
    id: UUID
    customer_id: UUID
    name: str
    stripe_id: str
    stripe_status: SubscriptionStatus
    stripe_price: str | None
    quantity: int | None
    trial_ends_at: datetime | None
    ends_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaymentActionResponse(BaseModel):
    """Returned with 402 when the customer must confirm the payment client-side."""

    message: str
    payment_intent: str
    client_secret: str | None = None
