"""Billing gateway abstraction over the payment provider.

The flows in this package only talk to ``BillingGateway``; ``StripeBillingGateway``
is the production implementation. Provider SDK errors never leave this
module: they are translated into the exceptions below.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from app.core.config import settings

if TYPE_CHECKING:
    from app.models.customer import Customer


class GatewayError(Exception):
    """Any failure reported by, or while talking to, the payment provider."""


class InvalidRequestError(GatewayError):
    """The provider rejected a request; ``param`` names the offending field."""

    def __init__(self, message: str, param: str | None = None):
        super().__init__(message)
        self.param = param


class IncompletePayment(GatewayError):
    """The subscription exists but its first payment did not go through."""

    def __init__(
        self,
        message: str,
        subscription_id: str,
        payment_intent_id: str | None = None,
        client_secret: str | None = None,
    ):
        super().__init__(message)
        self.subscription_id = subscription_id
        self.payment_intent_id = payment_intent_id
        self.client_secret = client_secret


class PaymentActionRequired(IncompletePayment):
    """The customer must confirm the payment client-side (e.g. 3-D Secure)."""


class PaymentFailure(IncompletePayment):
    """The payment method was declined."""


@dataclass(frozen=True)
class PromotionCode:
    id: str
    code: str


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    status: str
    client_secret: str | None = None


@dataclass(frozen=True)
class ProviderSubscription:
    id: str
    status: str
    price: str | None = None
    quantity: int | None = None
    trial_end: datetime | None = None
    payment_intent: PaymentIntent | None = None


def ensure_payment_completed(subscription: ProviderSubscription) -> None:
    """Raise if an incomplete subscription is waiting on its first payment."""
    intent = subscription.payment_intent
    if subscription.status != "incomplete" or intent is None:
        return
    if intent.status == "requires_action":
        raise PaymentActionRequired(
            "The payment attempt requires additional confirmation.",
            subscription_id=subscription.id,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
        )
    if intent.status == "requires_payment_method":
        raise PaymentFailure(
            "The payment attempt failed because of an invalid payment method.",
            subscription_id=subscription.id,
            payment_intent_id=intent.id,
        )


class BillingGateway(ABC):
    @abstractmethod
    def create_customer(self, billable: "Customer") -> str:
        """Create the provider-side customer and return its id."""
        pass  # pragma: no cover

    @abstractmethod
    def list_promotion_codes(self, code: str, options: dict[str, Any]) -> list[PromotionCode]:
        """Promotion codes whose code equals ``code`` exactly."""
        pass  # pragma: no cover

    @abstractmethod
    def create_subscription(
        self, params: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        pass  # pragma: no cover

    @abstractmethod
    def update_subscription(
        self, subscription_id: str, fields: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        pass  # pragma: no cover

    @abstractmethod
    def cancel_subscription(
        self, subscription_id: str, prorate: bool, options: dict[str, Any]
    ) -> ProviderSubscription:
        """Cancel immediately."""
        pass  # pragma: no cover


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class StripeBillingGateway(BillingGateway):
    def __init__(self, api_key: str | None = None, api_version: str | None = None):
        self.api_key = api_key or settings.stripe_api_key
        self.api_version = api_version or settings.stripe_api_version
        self._stripe: Any = None

    @property
    def stripe(self) -> Any:
        """Lazy-load stripe module."""
        if self._stripe is None:
            try:
                import stripe

                stripe.api_key = self.api_key
                if self.api_version:
                    stripe.api_version = self.api_version
                self._stripe = stripe
            except ImportError as e:
                raise ImportError("stripe package not installed. Run: pip install stripe") from e
        return self._stripe

    def _call(self, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except self.stripe.InvalidRequestError as e:
            raise InvalidRequestError(str(e.user_message or e), param=e.param) from e
        except self.stripe.StripeError as e:
            raise GatewayError(str(e.user_message or e)) from e

    def create_customer(self, billable: "Customer") -> str:
        params: dict[str, Any] = {
            "name": billable.name,
            "metadata": {"external_id": billable.external_id},
            **billable.billing_options(),
        }
        if billable.email:
            params["email"] = billable.email
        customer = self._call(self.stripe.Customer.create, **params)
        return str(customer["id"])

    def list_promotion_codes(self, code: str, options: dict[str, Any]) -> list[PromotionCode]:
        result = self._call(self.stripe.PromotionCode.list, code=code, **options)
        return [PromotionCode(id=p["id"], code=p["code"]) for p in _field(result, "data") or []]

    def create_subscription(
        self, params: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        subscription = self._call(
            self.stripe.Subscription.create,
            payment_behavior="allow_incomplete",
            expand=["latest_invoice.payment_intent"],
            **params,
            **options,
        )
        return self._to_subscription(subscription)

    def update_subscription(
        self, subscription_id: str, fields: dict[str, Any], options: dict[str, Any]
    ) -> ProviderSubscription:
        subscription = self._call(
            self.stripe.Subscription.modify, subscription_id, **fields, **options
        )
        return self._to_subscription(subscription)

    def cancel_subscription(
        self, subscription_id: str, prorate: bool, options: dict[str, Any]
    ) -> ProviderSubscription:
        subscription = self._call(
            self.stripe.Subscription.cancel, subscription_id, prorate=prorate, **options
        )
        return self._to_subscription(subscription)

    @staticmethod
    def _to_subscription(obj: Any) -> ProviderSubscription:
        items = _field(_field(obj, "items"), "data") or []
        first_item = items[0] if items else None
        trial_end = _field(obj, "trial_end")

        intent = _field(_field(obj, "latest_invoice"), "payment_intent")
        payment_intent = None
        # Unexpanded references come back as plain ids.
        if intent is not None and not isinstance(intent, str):
            payment_intent = PaymentIntent(
                id=_field(intent, "id"),
                status=_field(intent, "status"),
                client_secret=_field(intent, "client_secret"),
            )

        return ProviderSubscription(
            id=_field(obj, "id"),
            status=_field(obj, "status"),
            price=_field(_field(first_item, "price"), "id"),
            quantity=_field(first_item, "quantity"),
            trial_end=datetime.fromtimestamp(trial_end, tz=UTC) if trial_end else None,
            payment_intent=payment_intent,
        )


def get_billing_gateway() -> BillingGateway:
    """FastAPI dependency returning the configured gateway."""
    return StripeBillingGateway()
