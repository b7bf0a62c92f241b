from uuid import UUID

from sqlalchemy.orm import Session

from app.models.customer import Customer
from app.schemas.customer import CustomerCreate, CustomerUpdate


class CustomerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: UUID) -> Customer | None:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def get_by_external_id(self, external_id: str) -> Customer | None:
        return self.db.query(Customer).filter(Customer.external_id == external_id).first()

    def create(self, data: CustomerCreate) -> Customer:
        values = data.model_dump()
        values["product_type"] = data.product_type.value
        customer = Customer(**values)
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def update(self, customer_id: UUID, data: CustomerUpdate) -> Customer | None:
        customer = self.get_by_id(customer_id)
        if not customer:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(customer, key, value)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def set_stripe_id(self, customer: Customer, stripe_id: str) -> Customer:
        customer.stripe_id = stripe_id  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def clear_trial(self, customer: Customer) -> Customer:
        """Drop the generic trial marker once a paid subscription exists."""
        customer.trial_ends_at = None  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(customer)
        return customer
