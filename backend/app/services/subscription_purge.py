"""Best-effort removal of a billable's previous subscriptions."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.customer import Customer
from app.models.subscription import INCOMPLETE_STATUSES
from app.repositories.subscription_repository import SubscriptionRepository
from app.services.billing_gateway import BillingGateway

logger = logging.getLogger(__name__)


@dataclass
class PurgeOutcome:
    subscription_id: UUID
    previous_status: str
    canceled: bool = False
    deleted: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class PurgeReport:
    outcomes: list[PurgeOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[PurgeOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def succeeded(self) -> bool:
        return not self.failures


class SubscriptionPurgeService:
    """Cancels every non-canceled subscription of a billable.

    Incomplete subscriptions never billed anything, so their records are
    deleted after cancellation. A failure on one subscription is recorded in
    the report and the loop moves on; nothing is raised.
    """

    def __init__(self, db: Session, gateway: BillingGateway):
        self.db = db
        self.gateway = gateway
        self.subscription_repo = SubscriptionRepository(db)

    def purge(self, billable: Customer) -> PurgeReport:
        report = PurgeReport()

        for subscription in self.subscription_repo.get_non_canceled(billable.id):  # type: ignore[arg-type]
            outcome = PurgeOutcome(
                subscription_id=subscription.id,  # type: ignore[arg-type]
                previous_status=str(subscription.stripe_status),
            )
            report.outcomes.append(outcome)
            try:
                self.gateway.cancel_subscription(
                    str(subscription.stripe_id),
                    prorate=False,
                    options=billable.billing_options(),
                )
                self.subscription_repo.mark_canceled(subscription, datetime.now(UTC))
                outcome.canceled = True

                if outcome.previous_status in INCOMPLETE_STATUSES:
                    self.subscription_repo.delete(subscription)
                    outcome.deleted = True
            except Exception as e:
                self.db.rollback()
                outcome.error = str(e) or e.__class__.__name__
                logger.debug(
                    "Could not purge subscription %s (%s): %s",
                    subscription.id,
                    outcome.previous_status,
                    outcome.error,
                )

        return report
