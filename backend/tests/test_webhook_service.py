"""Tests for webhook recording, delivery and the event sink."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch
from uuid import uuid4

import httpx
import pytest

from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.repositories.webhook_repository import WebhookRepository
from app.services.events import SubscriptionCreated, WebhookEventSink
from app.services.webhook_service import WebhookService, generate_hmac_signature


@pytest.fixture
def endpoint(db_session):
    return WebhookEndpointRepository(db_session).create("https://hooks.test/billing")


@pytest.fixture
def webhook_service(db_session):
    return WebhookService(db_session)


def _mock_client(status_code=200, text="ok", error=None):
    client = MagicMock()
    client.__enter__.return_value = client
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = MagicMock(status_code=status_code, text=text)
    return client


class TestSendWebhook:
    def test_one_per_active_endpoint(self, webhook_service, db_session, endpoint):
        second = WebhookEndpointRepository(db_session).create("https://other.test")
        second.status = "inactive"
        db_session.commit()

        webhooks = webhook_service.send_webhook(
            "subscription.created", payload={"subscription_id": "x"}
        )

        assert len(webhooks) == 1
        assert webhooks[0].webhook_endpoint_id == endpoint.id
        assert webhooks[0].status == "pending"

    def test_no_endpoints(self, webhook_service):
        assert webhook_service.send_webhook("subscription.created") == []

    def test_unknown_type(self, webhook_service, endpoint):
        with pytest.raises(ValueError, match="Unknown webhook type"):
            webhook_service.send_webhook("invoice.paid")


class TestDeliverWebhook:
    def test_success_is_signed(self, webhook_service, endpoint):
        webhook = webhook_service.send_webhook("subscription.created", payload={"a": 1})[0]
        client = _mock_client(status_code=204, text="")

        with patch("app.services.webhook_service.httpx.Client", return_value=client):
            assert webhook_service.deliver_webhook(webhook.id) is True

        body = client.post.call_args.kwargs["content"]
        headers = client.post.call_args.kwargs["headers"]
        assert json.loads(body) == {"a": 1}
        assert headers["X-Webhook-Signature"] == generate_hmac_signature(
            body, "whsec_default_secret"
        )
        assert WebhookRepository(webhook_service.db).get_by_id(webhook.id).status == "succeeded"

    def test_non_2xx_marks_failed(self, webhook_service, endpoint):
        webhook = webhook_service.send_webhook("subscription.created")[0]

        with patch(
            "app.services.webhook_service.httpx.Client",
            return_value=_mock_client(status_code=500, text="oops"),
        ):
            assert webhook_service.deliver_webhook(webhook.id) is False

        stored = WebhookRepository(webhook_service.db).get_by_id(webhook.id)
        assert stored.status == "failed"
        assert stored.http_status == 500
        assert stored.response == "oops"

    def test_transport_error_marks_failed(self, webhook_service, endpoint):
        webhook = webhook_service.send_webhook("subscription.created")[0]

        with patch(
            "app.services.webhook_service.httpx.Client",
            return_value=_mock_client(error=httpx.ConnectError("refused")),
        ):
            assert webhook_service.deliver_webhook(webhook.id) is False

        assert WebhookRepository(webhook_service.db).get_by_id(webhook.id).response == "refused"

    def test_missing_webhook(self, webhook_service):
        assert webhook_service.deliver_webhook(uuid4()) is False


class TestRetry:
    def test_retries_failed_after_backoff(self, webhook_service, db_session, endpoint):
        webhook = webhook_service.send_webhook("subscription.created")[0]
        repo = WebhookRepository(db_session)
        repo.mark_failed(webhook, http_status=500)

        with patch(
            "app.services.webhook_service.httpx.Client", return_value=_mock_client()
        ):
            assert webhook_service.retry_failed_webhooks() == 1

        stored = repo.get_by_id(webhook.id)
        assert stored.retries == 1
        assert stored.status == "succeeded"

    def test_skips_webhooks_still_in_backoff(self, webhook_service, db_session, endpoint):
        webhook = webhook_service.send_webhook("subscription.created")[0]
        repo = WebhookRepository(db_session)
        repo.mark_failed(webhook)
        webhook.retries = 3
        webhook.last_retried_at = datetime.now(UTC) - timedelta(minutes=1)
        db_session.commit()

        assert webhook_service.retry_failed_webhooks() == 0


class TestWorker:
    @pytest.mark.asyncio
    async def test_deliver_pending_task(self, monkeypatch, webhook_service, endpoint):
        from app import worker
        from app.core import database as db_module

        monkeypatch.setattr(worker, "SessionLocal", db_module.SessionLocal)
        webhook_service.send_webhook("subscription.created")

        with patch(
            "app.services.webhook_service.httpx.Client", return_value=_mock_client()
        ):
            assert await worker.deliver_pending_webhooks_task({}) == 1

    @pytest.mark.asyncio
    async def test_retry_task(self, monkeypatch):
        from app import worker

        class FakeService:
            def __init__(self, db):
                pass

            def retry_failed_webhooks(self):
                return 2

        monkeypatch.setattr(worker, "WebhookService", FakeService)

        assert await worker.retry_failed_webhooks_task({}) == 2


def test_event_sink_records_subscription_created(db_session, endpoint):
    billable_id, subscription_id = uuid4(), uuid4()

    WebhookEventSink(db_session).emit(
        SubscriptionCreated(billable_id=billable_id, subscription_id=subscription_id)
    )

    (webhook,) = WebhookRepository(db_session).get_pending()
    assert webhook.webhook_type == "subscription.created"
    assert webhook.object_type == "subscription"
    assert webhook.object_id == subscription_id
    assert webhook.payload["customer_id"] == str(billable_id)
