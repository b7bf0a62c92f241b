from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.models.customer import UUIDType, generate_uuid, utc_now

DEFAULT_SUBSCRIPTION_NAME = "default"


class SubscriptionStatus(str, Enum):
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"


# Statuses that never produced a valid billing history.
INCOMPLETE_STATUSES = frozenset(
    {SubscriptionStatus.INCOMPLETE.value, SubscriptionStatus.INCOMPLETE_EXPIRED.value}
)

INACTIVE_STATUSES = INCOMPLETE_STATUSES | {
    SubscriptionStatus.PAST_DUE.value,
    SubscriptionStatus.UNPAID.value,
    SubscriptionStatus.CANCELED.value,
}


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    customer_id = Column(
        UUIDType,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False, default=DEFAULT_SUBSCRIPTION_NAME)
    stripe_id = Column(String(255), unique=True, index=True, nullable=False)
    stripe_status = Column(String(30), nullable=False, index=True)
    stripe_price = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=True)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="subscriptions")

    def on_trial(self, now: datetime | None = None) -> bool:
        if self.trial_ends_at is None:
            return False
        return as_utc(self.trial_ends_at) > (now or datetime.now(UTC))

    def ended(self, now: datetime | None = None) -> bool:
        if self.ends_at is None:
            return False
        return as_utc(self.ends_at) <= (now or datetime.now(UTC))

    def incomplete(self) -> bool:
        return self.stripe_status in INCOMPLETE_STATUSES

    def active(self, now: datetime | None = None) -> bool:
        """Usable for billing: not ended and not in a failed or unpaid state."""
        return not self.ended(now) and self.stripe_status not in INACTIVE_STATUSES
