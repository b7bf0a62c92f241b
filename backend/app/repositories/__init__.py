from app.repositories.customer_repository import CustomerRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository

__all__ = [
    "CustomerRepository",
    "SubscriptionRepository",
    "WebhookEndpointRepository",
    "WebhookRepository",
]
