from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class WebhookEndpointCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class WebhookEndpointResponse(BaseModel):
    id: UUID
    url: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
