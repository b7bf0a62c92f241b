from uuid import UUID

from sqlalchemy.orm import Session

from app.models.webhook_endpoint import WebhookEndpoint


class WebhookEndpointRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, endpoint_id: UUID) -> WebhookEndpoint | None:
        return self.db.query(WebhookEndpoint).filter(WebhookEndpoint.id == endpoint_id).first()

    def get_active(self) -> list[WebhookEndpoint]:
        return (
            self.db.query(WebhookEndpoint)
            .filter(WebhookEndpoint.status == "active")
            .order_by(WebhookEndpoint.created_at.desc())
            .all()
        )

    def create(self, url: str) -> WebhookEndpoint:
        endpoint = WebhookEndpoint(url=url)
        self.db.add(endpoint)
        self.db.commit()
        self.db.refresh(endpoint)
        return endpoint
