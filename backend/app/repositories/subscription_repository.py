from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.subscription import DEFAULT_SUBSCRIPTION_NAME, Subscription, SubscriptionStatus


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, subscription_id: UUID) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def get_by_stripe_id(self, stripe_id: str) -> Subscription | None:
        return self.db.query(Subscription).filter(Subscription.stripe_id == stripe_id).first()

    def get_by_customer_id(self, customer_id: UUID) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(Subscription.customer_id == customer_id)
            .order_by(Subscription.created_at.desc())
            .all()
        )

    def get_non_canceled(self, customer_id: UUID) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.customer_id == customer_id,
                Subscription.stripe_status != SubscriptionStatus.CANCELED.value,
            )
            .order_by(Subscription.created_at.asc())
            .all()
        )

    def get_latest(
        self, customer_id: UUID, name: str = DEFAULT_SUBSCRIPTION_NAME
    ) -> Subscription | None:
        return (
            self.db.query(Subscription)
            .filter(Subscription.customer_id == customer_id, Subscription.name == name)
            .order_by(Subscription.created_at.desc())
            .first()
        )

    def create_from_provider(
        self,
        customer_id: UUID,
        name: str,
        stripe_id: str,
        stripe_status: str,
        stripe_price: str | None,
        quantity: int | None,
        trial_ends_at: datetime | None,
    ) -> Subscription:
        subscription = Subscription(
            customer_id=customer_id,
            name=name,
            stripe_id=stripe_id,
            stripe_status=stripe_status,
            stripe_price=stripe_price,
            quantity=quantity,
            trial_ends_at=trial_ends_at,
            ends_at=None,
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def sync_status(self, subscription: Subscription, stripe_status: str) -> Subscription:
        subscription.stripe_status = stripe_status  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def mark_canceled(self, subscription: Subscription, ended_at: datetime) -> Subscription:
        subscription.stripe_status = SubscriptionStatus.CANCELED.value  # type: ignore[assignment]
        subscription.ends_at = ended_at  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def delete(self, subscription: Subscription) -> None:
        self.db.delete(subscription)
        self.db.commit()
