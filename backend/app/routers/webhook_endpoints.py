from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.webhook_endpoint import WebhookEndpoint
from app.repositories.webhook_endpoint_repository import WebhookEndpointRepository
from app.schemas.webhook import WebhookEndpointCreate, WebhookEndpointResponse

router = APIRouter()


@router.post(
    "/",
    response_model=WebhookEndpointResponse,
    status_code=201,
    summary="Register webhook endpoint",
)
async def create_webhook_endpoint(
    data: WebhookEndpointCreate,
    db: Session = Depends(get_db),
) -> WebhookEndpoint:
    return WebhookEndpointRepository(db).create(data.url)


@router.get(
    "/",
    response_model=list[WebhookEndpointResponse],
    summary="List active webhook endpoints",
)
async def list_webhook_endpoints(db: Session = Depends(get_db)) -> list[WebhookEndpoint]:
    return WebhookEndpointRepository(db).get_active()
