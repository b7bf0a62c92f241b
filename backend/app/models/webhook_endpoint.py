"""Targets that receive billing events."""

from sqlalchemy import Column, DateTime, String, func

from app.core.database import Base
from app.models.customer import UUIDType, generate_uuid


class WebhookEndpoint(Base):
    __tablename__ = "webhook_endpoints"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    url = Column(String(2048), nullable=False)
    status = Column(String(50), nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
