import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.database import init_db
from app.routers import customers, subscriptions, webhook_endpoints

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

OPENAPI_TAGS = [
    {"name": "Customers", "description": "Create and read billable customers."},
    {
        "name": "Subscriptions",
        "description": "Subscribe customers to plans and apply coupons or promotion codes.",
    },
    {"name": "Webhooks", "description": "Register endpoints that receive billing events."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description="Subscription billing on top of Stripe: plans, trials, seats and coupons.",
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(customers.router, prefix="/v1/customers", tags=["Customers"])
app.include_router(subscriptions.router, prefix="/v1/customers", tags=["Subscriptions"])
app.include_router(
    webhook_endpoints.router,
    prefix="/v1/webhook_endpoints",
    tags=["Webhooks"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
