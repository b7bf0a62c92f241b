"""Mutable request for a new provider subscription."""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.models.customer import Customer
from app.models.subscription import Subscription
from app.repositories.customer_repository import CustomerRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.billing_gateway import BillingGateway, ensure_payment_completed


class SubscriptionBuilder:
    def __init__(
        self,
        db: Session,
        gateway: BillingGateway,
        billable: Customer,
        name: str,
        price: str,
    ):
        self.db = db
        self.gateway = gateway
        self.billable = billable
        self.name = name
        self.price = price
        self.trial_expires: datetime | None = None
        self.skips_trial = False
        self.coupon: str | None = None
        self.promotion_code: str | None = None
        self.seats: int | None = None

    def trial_days(self, days: int) -> "SubscriptionBuilder":
        self.trial_expires = datetime.now(UTC) + timedelta(days=days)
        self.skips_trial = False
        return self

    def skip_trial(self) -> "SubscriptionBuilder":
        self.trial_expires = None
        self.skips_trial = True
        return self

    def with_coupon(self, coupon: str) -> "SubscriptionBuilder":
        self.coupon = coupon
        return self

    def with_promotion_code(self, promotion_code_id: str) -> "SubscriptionBuilder":
        self.promotion_code = promotion_code_id
        return self

    def quantity(self, seats: int) -> "SubscriptionBuilder":
        self.seats = seats
        return self

    def to_params(self) -> dict[str, Any]:
        item: dict[str, Any] = {"price": self.price}
        if self.seats is not None:
            item["quantity"] = self.seats

        params: dict[str, Any] = {
            "customer": self.billable.stripe_id,
            "items": [item],
            "metadata": {"name": self.name},
        }
        if self.skips_trial:
            params["trial_end"] = "now"
        elif self.trial_expires is not None:
            params["trial_end"] = int(self.trial_expires.timestamp())
        if self.coupon:
            params["coupon"] = self.coupon
        if self.promotion_code:
            params["promotion_code"] = self.promotion_code
        return params

    def create(self) -> Subscription:
        """Submit to the provider and store the local record.

        The record is stored before payment validation so an incomplete
        subscription is still known locally (and purged next time).
        """
        if not self.billable.stripe_id:
            CustomerRepository(self.db).set_stripe_id(
                self.billable, self.gateway.create_customer(self.billable)
            )

        provider_subscription = self.gateway.create_subscription(
            self.to_params(), self.billable.billing_options()
        )

        subscription = SubscriptionRepository(self.db).create_from_provider(
            customer_id=self.billable.id,  # type: ignore[arg-type]
            name=self.name,
            stripe_id=provider_subscription.id,
            stripe_status=provider_subscription.status,
            stripe_price=provider_subscription.price or self.price,
            quantity=provider_subscription.quantity or self.seats,
            trial_ends_at=None if self.skips_trial else self.trial_expires,
        )

        ensure_payment_completed(provider_subscription)
        return subscription
