"""Domain events raised by the subscription flows and the sinks that take them."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from app.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionCreated:
    billable_id: UUID
    subscription_id: UUID
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    webhook_type = "subscription.created"


class EventSink(Protocol):
    def emit(self, event: SubscriptionCreated) -> None: ...


class WebhookEventSink:
    """Turns domain events into pending webhooks for every active endpoint."""

    def __init__(self, db: Session):
        self.webhook_service = WebhookService(db)

    def emit(self, event: SubscriptionCreated) -> None:
        webhooks = self.webhook_service.send_webhook(
            webhook_type=event.webhook_type,
            object_type="subscription",
            object_id=event.subscription_id,
            payload={
                "customer_id": str(event.billable_id),
                "subscription_id": str(event.subscription_id),
                "occurred_at": event.occurred_at.isoformat(),
            },
        )
        logger.info("Queued %d %s webhooks", len(webhooks), event.webhook_type)
