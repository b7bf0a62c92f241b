from app.models.customer import Customer
from app.models.subscription import DEFAULT_SUBSCRIPTION_NAME, Subscription, SubscriptionStatus
from app.models.webhook import Webhook
from app.models.webhook_endpoint import WebhookEndpoint

__all__ = [
    "Customer",
    "DEFAULT_SUBSCRIPTION_NAME",
    "Subscription",
    "SubscriptionStatus",
    "Webhook",
    "WebhookEndpoint",
]
