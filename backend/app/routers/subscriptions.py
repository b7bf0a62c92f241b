from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.billing import PlanNotFoundError
from app.core.database import get_db
from app.models.customer import Customer
from app.models.subscription import Subscription
from app.repositories.customer_repository import CustomerRepository
from app.repositories.subscription_repository import SubscriptionRepository
from app.schemas.subscription import (
    ApplyCouponRequest,
    PaymentActionResponse,
    SubscriptionCreate,
    SubscriptionResponse,
)
from app.services.billing_gateway import BillingGateway, PaymentActionRequired, get_billing_gateway
from app.services.coupon_service import CouponApplicationService, SubscriptionNotFoundError
from app.services.events import WebhookEventSink
from app.services.gateway_errors import BillingValidationError
from app.services.subscription_service import CreateSubscriptionService

router = APIRouter()

PAYMENT_ACTION_RESPONSES = {
    402: {"description": "Payment requires confirmation", "model": PaymentActionResponse},
    404: {"description": "Customer not found"},
    422: {"description": "Payment or coupon rejected"},
}


def _get_customer(customer_id: UUID, db: Session) -> Customer:
    customer = CustomerRepository(db).get_by_id(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _payment_action_response(exc: PaymentActionRequired) -> JSONResponse:
    body = PaymentActionResponse(
        message=str(exc),
        payment_intent=exc.payment_intent_id or "",
        client_secret=exc.client_secret,
    )
    return JSONResponse(status_code=402, content=body.model_dump())


@router.get(
    "/{customer_id}/subscriptions",
    response_model=list[SubscriptionResponse],
    summary="List customer subscriptions",
    responses={404: {"description": "Customer not found"}},
)
async def list_subscriptions(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> list[Subscription]:
    _get_customer(customer_id, db)
    return SubscriptionRepository(db).get_by_customer_id(customer_id)


@router.post(
    "/{customer_id}/subscriptions",
    response_model=SubscriptionResponse,
    status_code=201,
    summary="Subscribe customer to a plan",
    responses=PAYMENT_ACTION_RESPONSES,
)
async def create_subscription(
    customer_id: UUID,
    data: SubscriptionCreate,
    db: Session = Depends(get_db),
    gateway: BillingGateway = Depends(get_billing_gateway),
) -> Subscription | JSONResponse:
    """Replace the customer's default subscription with one on ``plan``."""
    customer = _get_customer(customer_id, db)
    service = CreateSubscriptionService(db, gateway, WebhookEventSink(db))
    try:
        return service.create(customer, data.plan, coupon=data.coupon)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentActionRequired as e:
        return _payment_action_response(e)
    except BillingValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors) from e


@router.put(
    "/{customer_id}/subscriptions/coupon",
    response_model=SubscriptionResponse,
    summary="Apply coupon to the default subscription",
    responses=PAYMENT_ACTION_RESPONSES,
)
async def apply_coupon(
    customer_id: UUID,
    data: ApplyCouponRequest,
    db: Session = Depends(get_db),
    gateway: BillingGateway = Depends(get_billing_gateway),
) -> Subscription | JSONResponse:
    customer = _get_customer(customer_id, db)
    service = CouponApplicationService(db, gateway)
    try:
        return service.apply(data.coupon, customer)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Subscription not found") from e
    except PaymentActionRequired as e:
        return _payment_action_response(e)
    except BillingValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors) from e
