"""Plan catalog resolved from settings.

Product types are a closed set (see ``ProductType``); every plan belongs to
exactly one of them and is looked up by its provider price id.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.core.config import ProductSettings, ProductType, Settings, settings

if TYPE_CHECKING:
    from app.models.customer import Customer


class PlanNotFoundError(LookupError):
    """Raised when a plan id is not part of a product type's catalog."""

    def __init__(self, product_type: ProductType, plan_id: str):
        self.product_type = product_type
        self.plan_id = plan_id
        super().__init__(f"Plan '{plan_id}' not found for product type '{product_type.value}'")


@dataclass(frozen=True)
class Plan:
    id: str
    name: str
    interval: str
    trial_days: int
    product_type: ProductType


class PlanCatalog:
    """Read-only lookup of plans and seat pricing per product type."""

    def __init__(self, products: dict[ProductType, ProductSettings]):
        self._products = dict(products)

    @classmethod
    def from_settings(cls, config: Settings) -> "PlanCatalog":
        return cls(config.billing_products)

    def _product(self, product_type: ProductType) -> ProductSettings:
        return self._products.get(product_type) or ProductSettings()

    def plans(self, product_type: ProductType) -> list[Plan]:
        return [
            Plan(
                id=p.id,
                name=p.name,
                interval=p.interval,
                trial_days=p.trial_days,
                product_type=product_type,
            )
            for p in self._product(product_type).plans
        ]

    def find(self, product_type: ProductType, plan_id: str) -> Plan | None:
        return next((p for p in self.plans(product_type) if p.id == plan_id), None)

    def get(self, product_type: ProductType, plan_id: str) -> Plan:
        plan = self.find(product_type, plan_id)
        if plan is None:
            raise PlanNotFoundError(product_type, plan_id)
        return plan

    def charges_per_seat(self, product_type: ProductType) -> bool:
        return self._product(product_type).charges_per_seat

    def seat_count(self, product_type: ProductType, billable: "Customer") -> int:
        return max(int(billable.seats or 0), 1)


catalog = PlanCatalog.from_settings(settings)
