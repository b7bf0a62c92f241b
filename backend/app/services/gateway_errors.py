"""Classification of billing gateway failures into user-facing outcomes."""

import logging
from enum import Enum
from typing import NoReturn, cast

from app.services.billing_gateway import InvalidRequestError, PaymentActionRequired

logger = logging.getLogger(__name__)

COUPON_PARAMS = frozenset({"coupon", "promotion_code"})

PAYMENT_ERROR_MESSAGE = "We are unable to process your payment. Please contact customer support."
UNEXPECTED_ERROR_MESSAGE = (
    "An unexpected error occurred and we have notified our support team. Please try again later."
)
INVALID_COUPON_MESSAGE = "The provided coupon code is invalid."


class GatewayErrorKind(str, Enum):
    COUPON_OR_PROMOTION_REJECTED = "coupon_or_promotion_rejected"
    PAYMENT_ACTION_REQUIRED = "payment_action_required"
    GENERIC = "generic"


class BillingValidationError(Exception):
    """A failure to show the user, keyed by the input field it concerns."""

    field = "*"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def errors(self) -> dict[str, list[str]]:
        return {self.field: [self.message]}


class PaymentValidationError(BillingValidationError):
    pass


class CouponRejectedError(BillingValidationError):
    field = "coupon"

    def __init__(self, message: str = INVALID_COUPON_MESSAGE):
        super().__init__(message)


def classify_gateway_error(exc: BaseException) -> GatewayErrorKind:
    if isinstance(exc, PaymentActionRequired):
        return GatewayErrorKind.PAYMENT_ACTION_REQUIRED
    if isinstance(exc, InvalidRequestError) and exc.param in COUPON_PARAMS:
        return GatewayErrorKind.COUPON_OR_PROMOTION_REJECTED
    return GatewayErrorKind.GENERIC


def handle_coupon_exception(exc: InvalidRequestError) -> NoReturn:
    raise CouponRejectedError() from exc


def raise_for_gateway_error(exc: Exception, message: str = PAYMENT_ERROR_MESSAGE) -> NoReturn:
    """Re-raise a gateway failure as the outcome the caller should see.

    PaymentActionRequired passes through untouched. Coupon rejections become
    a ``coupon`` field error. Everything else is reported and replaced by a
    generic message so provider details never reach the user.
    """
    kind = classify_gateway_error(exc)

    if kind is GatewayErrorKind.PAYMENT_ACTION_REQUIRED:
        raise exc
    if kind is GatewayErrorKind.COUPON_OR_PROMOTION_REJECTED:
        handle_coupon_exception(cast(InvalidRequestError, exc))

    logger.exception("Billing gateway request failed", exc_info=exc)
    raise PaymentValidationError(message) from exc
