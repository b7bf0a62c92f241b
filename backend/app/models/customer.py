import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, DateTime, Integer, String, TypeDecorator, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import relationship

from app.core.config import ProductType
from app.core.database import Base


class UUIDType(TypeDecorator[uuid.UUID]):
    """Platform-independent UUID type.

    Uses String(36) for SQLite, native UUID for PostgreSQL.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


def generate_uuid() -> uuid.UUID:
    """Generate a new UUID."""
    return uuid.uuid4()


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


class Customer(Base):
    """A billable entity: a user or an organization paying for a plan."""

    __tablename__ = "customers"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    external_id = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    product_type = Column(String(20), nullable=False, default=ProductType.USER.value)
    stripe_id = Column(String(255), unique=True, index=True, nullable=True)
    stripe_account = Column(String(255), nullable=True)
    seats = Column(Integer, nullable=False, default=1)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    subscriptions = relationship(
        "Subscription",
        back_populates="customer",
        order_by="Subscription.created_at.desc()",
    )

    @property
    def type(self) -> ProductType:
        return ProductType(self.product_type)

    def billing_options(self) -> dict[str, Any]:
        """Per-request options for the payment provider."""
        if self.stripe_account:
            return {"stripe_account": self.stripe_account}
        return {}
