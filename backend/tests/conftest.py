"""Shared test fixtures for all test modules."""

import contextlib
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core import database as db_module
from app.core.billing import PlanCatalog
from app.core.config import PlanSettings, ProductSettings, ProductType
from app.core.database import Base, get_db
from app.repositories.customer_repository import CustomerRepository
from app.schemas.customer import CustomerCreate
from app.services.billing_gateway import (
    BillingGateway,
    PaymentIntent,
    PromotionCode,
    ProviderSubscription,
)

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)


class FakeBillingGateway(BillingGateway):
    """In-memory gateway that records every call it receives."""

    def __init__(self) -> None:
        self.promotion_codes: list[PromotionCode] = []
        self.promotion_lookups: list[tuple[str, dict[str, Any]]] = []
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.canceled: list[tuple[str, bool]] = []
        self.cancel_errors: dict[str, Exception] = {}
        self.create_error: Exception | None = None
        self.update_error: Exception | None = None
        self.next_status = "active"
        self.next_payment_intent: PaymentIntent | None = None
        self.customers_created = 0

    def create_customer(self, billable: Any) -> str:
        self.customers_created += 1
        return f"cus_{uuid4().hex[:12]}"

    def list_promotion_codes(self, code: str, options: dict[str, Any]) -> list[PromotionCode]:
        self.promotion_lookups.append((code, options))
        return [p for p in self.promotion_codes if p.code == code]

    def create_subscription(
        self, params: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        self.created.append(params)
        if self.create_error is not None:
            raise self.create_error
        item = params["items"][0]
        return ProviderSubscription(
            id=f"sub_{uuid4().hex[:12]}",
            status=self.next_status,
            price=item["price"],
            quantity=item.get("quantity", 1),
            payment_intent=self.next_payment_intent,
        )

    def update_subscription(
        self, subscription_id: str, fields: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        self.updated.append((subscription_id, fields))
        if self.update_error is not None:
            raise self.update_error
        return ProviderSubscription(id=subscription_id, status="active")

    def cancel_subscription(
        self, subscription_id: str, prorate: bool, options: dict[str, Any]
    ) -> ProviderSubscription:
        if subscription_id in self.cancel_errors:
            raise self.cancel_errors[subscription_id]
        self.canceled.append((subscription_id, prorate))
        return ProviderSubscription(id=subscription_id, status="canceled")


class RecordingEventSink:
    def __init__(self) -> None:
        self.events: list[Any] = []

    def emit(self, event: Any) -> None:
        self.events.append(event)


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def gateway():
    return FakeBillingGateway()


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def plan_catalog():
    return PlanCatalog(
        {
            ProductType.USER: ProductSettings(
                plans=[
                    PlanSettings(id="pro", name="Pro", trial_days=14),
                    PlanSettings(id="basic", name="Basic", trial_days=7),
                    PlanSettings(id="no-trial", name="No Trial"),
                ]
            ),
            ProductType.ORGANIZATION: ProductSettings(
                charges_per_seat=True,
                plans=[PlanSettings(id="team", name="Team", trial_days=0)],
            ),
        }
    )


@pytest.fixture
def customer(db_session):
    """Create a billable user."""
    return CustomerRepository(db_session).create(
        CustomerCreate(
            external_id=f"cust_{uuid4()}",
            name="Test Customer",
            email="customer@test.com",
        )
    )
