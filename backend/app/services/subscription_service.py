"""Creation of a billable's default subscription."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.core.billing import Plan, PlanCatalog, catalog
from app.core.config import Settings, settings
from app.core.database import advisory_lock
from app.models.customer import Customer
from app.models.subscription import DEFAULT_SUBSCRIPTION_NAME, Subscription, as_utc
from app.repositories.customer_repository import CustomerRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.billing_gateway import BillingGateway, GatewayError
from app.services.coupon_service import resolve_coupon
from app.services.events import EventSink, SubscriptionCreated
from app.services.gateway_errors import PAYMENT_ERROR_MESSAGE, raise_for_gateway_error
from app.services.subscription_builder import SubscriptionBuilder
from app.services.subscription_purge import SubscriptionPurgeService

logger = logging.getLogger(__name__)


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days from ``moment`` to ``now``; negative when ``moment`` is in the future."""
    return int((now - as_utc(moment)).total_seconds() // 86400)


class CreateSubscriptionService:
    def __init__(
        self,
        db: Session,
        gateway: BillingGateway,
        event_sink: EventSink,
        plan_catalog: PlanCatalog | None = None,
        config: Settings | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.event_sink = event_sink
        self.catalog = plan_catalog or catalog
        self.config = config or settings
        self.customer_repo = CustomerRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.purge_service = SubscriptionPurgeService(db, gateway)

    def create(
        self, billable: Customer, plan_id: str, coupon: str | None = None
    ) -> Subscription:
        """Subscribe ``billable`` to ``plan_id``, replacing any previous subscription.

        1. Resolve the plan for the billable's product type
        2. Cancel (and for incomplete ones, delete) previous subscriptions
        3. Configure the trial
        4. Attach the coupon or promotion code, if any
        5. Set the seat quantity for seat-priced products
        6. Submit to the provider
        7. If the subscription is trialing or active, clear the billable's
           generic trial and emit SubscriptionCreated (sink failures are logged)

        Raises:
            PlanNotFoundError: If the plan is not in the billable's catalog.
            PaymentActionRequired: The customer must confirm the payment.
            CouponRejectedError: The provider rejected the coupon.
            PaymentValidationError: Any other provider failure.
        """
        product_type = billable.type
        plan = self.catalog.get(product_type, plan_id)

        with advisory_lock(self.db, billable.id):  # type: ignore[arg-type]
            previous_ends_at = self._previous_subscription_end(billable)

            report = self.purge_service.purge(billable)
            if report.failures:
                logger.debug(
                    "Purge left %d subscriptions of customer %s untouched",
                    len(report.failures),
                    billable.id,
                )

            builder = SubscriptionBuilder(
                self.db, self.gateway, billable, DEFAULT_SUBSCRIPTION_NAME, plan.id
            )
            self.configure_trial(previous_ends_at, plan, builder)

            if coupon:
                self.apply_coupon(coupon, billable, builder)

            if self.catalog.charges_per_seat(product_type):
                builder.quantity(self.catalog.seat_count(product_type, billable))

            subscription = self._submit(builder)

            if subscription.on_trial() or subscription.active():
                self.customer_repo.clear_trial(billable)
                self._emit_created(billable, subscription)

        logger.info(
            "Created subscription %s (%s) for customer %s on plan %s",
            subscription.stripe_id,
            subscription.stripe_status,
            billable.id,
            plan.id,
        )
        return subscription

    def _emit_created(self, billable: Customer, subscription: Subscription) -> None:
        # Sink failures are logged, never raised: the provider subscription already exists.
        try:
            self.event_sink.emit(
                SubscriptionCreated(
                    billable_id=billable.id,  # type: ignore[arg-type]
                    subscription_id=subscription.id,  # type: ignore[arg-type]
                )
            )
        except Exception:
            self.db.rollback()
            logger.exception(
                "Could not emit subscription.created for subscription %s", subscription.id
            )

    def _previous_subscription_end(self, billable: Customer) -> datetime | None:
        """End of the latest default subscription, read before purging touches it.

        A subscription that has not ended yet is about to be canceled, so it
        counts as ending now. None means there is no previous subscription.
        """
        previous = self.subscription_repo.get_latest(billable.id)  # type: ignore[arg-type]
        if previous is None:
            return None
        return previous.ends_at or datetime.now(UTC)

    def configure_trial(
        self, previous_ends_at: datetime | None, plan: Plan, builder: SubscriptionBuilder
    ) -> None:
        threshold = self.config.skip_trial_if_subscribed_before

        if (
            threshold is not None
            and previous_ends_at is not None
            and days_since(previous_ends_at, datetime.now(UTC)) < threshold
        ):
            builder.skip_trial()
            return

        if plan.trial_days > 0:
            builder.trial_days(plan.trial_days)

    def apply_coupon(self, coupon: str, billable: Customer, builder: SubscriptionBuilder) -> None:
        try:
            resolution = resolve_coupon(self.gateway, coupon, billable)
        except GatewayError as e:
            raise_for_gateway_error(e, PAYMENT_ERROR_MESSAGE)

        if resolution.promotion_code is not None:
            builder.with_promotion_code(resolution.promotion_code)
        else:
            builder.with_coupon(coupon)

    def _submit(self, builder: SubscriptionBuilder) -> Subscription:
        try:
            return builder.create()
        except Exception as e:
            raise_for_gateway_error(e, PAYMENT_ERROR_MESSAGE)
