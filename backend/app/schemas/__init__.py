from app.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from app.schemas.subscription import (
    ApplyCouponRequest,
    PaymentActionResponse,
    SubscriptionCreate,
    SubscriptionResponse,
)
from app.schemas.webhook import WebhookEndpointCreate, WebhookEndpointResponse

__all__ = [
    "ApplyCouponRequest",
    "CustomerCreate",
    "CustomerResponse",
    "CustomerUpdate",
    "PaymentActionResponse",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "WebhookEndpointCreate",
    "WebhookEndpointResponse",
]
