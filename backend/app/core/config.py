from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProductType(str, Enum):
    USER = "user"
    ORGANIZATION = "organization"


class PlanSettings(BaseModel):
    id: str  # provider price id
    name: str
    interval: str = "monthly"
    trial_days: int = Field(default=0, ge=0)


class ProductSettings(BaseModel):
    charges_per_seat: bool = False
    plans: list[PlanSettings] = Field(default_factory=list)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Seatbill"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/seatbill.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Stripe
    stripe_api_key: str = ""
    stripe_api_version: str | None = None

    # Webhook signing
    webhook_secret: str = "whsec_default_secret"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Trial is skipped when the last subscription ended fewer than this many days ago
    skip_trial_if_subscribed_before: int | None = None

    # Plan catalog, keyed by product type. JSON when given through the environment.
    billing_products: dict[ProductType, ProductSettings] = Field(
        default_factory=lambda: {ProductType.USER: ProductSettings()}
    )


settings = Settings()
