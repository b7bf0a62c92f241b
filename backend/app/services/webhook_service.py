"""Recording and delivering outbound billing events."""

import hashlib
import hmac
import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.webhook import Webhook
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository

logger = logging.getLogger(__name__)

WEBHOOK_EVENT_TYPES = [
    "subscription.created",
]


def generate_hmac_signature(payload_bytes: bytes, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of the payload."""
    return hmac.new(
        secret.encode("utf-8"),
        payload_bytes,
        hashlib.sha256,
    ).hexdigest()


class WebhookService:
    def __init__(self, db: Session):
        self.db = db
        self.endpoint_repo = WebhookEndpointRepository(db)
        self.webhook_repo = WebhookRepository(db)

    def send_webhook(
        self,
        webhook_type: str,
        object_type: str | None = None,
        object_id: UUID | None = None,
        payload: dict[str, Any] | None = None,
    ) -> list[Webhook]:
        """Record one pending webhook per active endpoint.

        Delivery happens later, in the worker.
        """
        if webhook_type not in WEBHOOK_EVENT_TYPES:
            raise ValueError(f"Unknown webhook type '{webhook_type}'")

        webhooks: list[Webhook] = []
        for endpoint in self.endpoint_repo.get_active():
            webhooks.append(
                self.webhook_repo.create(
                    webhook_endpoint_id=endpoint.id,  # type: ignore[arg-type]
                    webhook_type=webhook_type,
                    object_type=object_type,
                    object_id=object_id,
                    payload=payload or {},
                )
            )
        return webhooks

    def deliver_webhook(self, webhook_id: UUID) -> bool:
        """POST a webhook to its endpoint and record the outcome.

        Returns:
            True if the endpoint answered with a 2xx status.
        """
        webhook = self.webhook_repo.get_by_id(webhook_id)
        if not webhook:
            logger.error("Webhook %s not found", webhook_id)
            return False

        endpoint = self.endpoint_repo.get_by_id(webhook.webhook_endpoint_id)  # type: ignore[arg-type]
        if not endpoint:
            logger.error(
                "Endpoint %s not found for webhook %s",
                webhook.webhook_endpoint_id,
                webhook_id,
            )
            self.webhook_repo.mark_failed(webhook, response="Endpoint not found")
            return False

        payload_bytes = json.dumps(webhook.payload, default=str).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": generate_hmac_signature(payload_bytes, settings.webhook_secret),
            "X-Webhook-Id": str(webhook.id),
            "X-Webhook-Type": str(webhook.webhook_type),
        }

        try:
            with httpx.Client(timeout=30.0) as client:
                resp = client.post(str(endpoint.url), content=payload_bytes, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Webhook delivery failed for %s: %s", webhook_id, exc)
            self.webhook_repo.mark_failed(webhook, response=str(exc)[:1000])
            return False

        if 200 <= resp.status_code < 300:
            self.webhook_repo.mark_succeeded(webhook, resp.status_code)
            return True

        self.webhook_repo.mark_failed(
            webhook,
            http_status=resp.status_code,
            response=resp.text[:1000] if resp.text else None,
        )
        return False

    def deliver_pending_webhooks(self) -> int:
        """Deliver every pending webhook once. Returns how many succeeded."""
        return sum(
            self.deliver_webhook(webhook.id)  # type: ignore[arg-type]
            for webhook in self.webhook_repo.get_pending()
        )

    def retry_failed_webhooks(self) -> int:
        """Re-deliver failed webhooks whose backoff (2^retries minutes) has elapsed."""
        retried = 0
        now = datetime.now(UTC)

        for webhook in self.webhook_repo.get_failed_for_retry():
            if webhook.last_retried_at:
                backoff = timedelta(minutes=2 ** int(webhook.retries))
                if now < webhook.last_retried_at.replace(tzinfo=UTC) + backoff:
                    continue

            self.webhook_repo.increment_retry(webhook)
            self.deliver_webhook(webhook.id)  # type: ignore[arg-type]
            retried += 1

        return retried
