"""Coupon and promotion code handling for provider subscriptions."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.models.customer import Customer
from app.models.subscription import Subscription
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.billing_gateway import BillingGateway, GatewayError
from app.services.gateway_errors import UNEXPECTED_ERROR_MESSAGE, raise_for_gateway_error

logger = logging.getLogger(__name__)


class SubscriptionNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class CouponResolution:
    """Either a promotion code id or a raw coupon code, never both."""

    promotion_code: str | None = None
    coupon: str | None = None

    def as_params(self) -> dict[str, Any]:
        if self.promotion_code is not None:
            return {"promotion_code": self.promotion_code}
        return {"coupon": self.coupon}


def resolve_coupon(gateway: BillingGateway, coupon: str, billable: Customer) -> CouponResolution:
    """Look ``coupon`` up as a promotion code first, else pass it through as a coupon.

    Both share one input field in the UI, but the provider treats them as
    different objects and a promotion code match wins.
    """
    codes = gateway.list_promotion_codes(coupon, billable.billing_options())
    if codes:
        return CouponResolution(promotion_code=codes[0].id)
    return CouponResolution(coupon=coupon)


class CouponApplicationService:
    """Applies a coupon to a billable's existing subscription."""

    def __init__(self, db: Session, gateway: BillingGateway):
        self.db = db
        self.gateway = gateway
        self.subscription_repo = SubscriptionRepository(db)

    def apply(
        self, coupon: str, billable: Customer, subscription: Subscription | None = None
    ) -> Subscription:
        """Resolve ``coupon`` and attach it to the subscription at the provider.

        Args:
            coupon: Promotion code or coupon id as typed by the customer.
            billable: Owner of the subscription.
            subscription: Defaults to the billable's latest ``default`` subscription.

        Raises:
            SubscriptionNotFoundError: If the billable has no subscription.
            CouponRejectedError: If the provider rejects the coupon.
            PaymentActionRequired: Passed through from the provider.
            PaymentValidationError: For any other gateway failure.
        """
        if subscription is None:
            subscription = self.subscription_repo.get_latest(billable.id)  # type: ignore[arg-type]
        if subscription is None:
            raise SubscriptionNotFoundError(f"Customer {billable.id} has no subscription")

        try:
            resolution = resolve_coupon(self.gateway, coupon, billable)
            provider_subscription = self.gateway.update_subscription(
                str(subscription.stripe_id),
                resolution.as_params(),
                billable.billing_options(),
            )
        except GatewayError as e:
            raise_for_gateway_error(e, UNEXPECTED_ERROR_MESSAGE)

        logger.info("Applied %s to subscription %s", resolution.as_params(), subscription.id)
        return self.subscription_repo.sync_status(subscription, provider_subscription.status)
