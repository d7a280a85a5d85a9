from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator
from typing import Optional

from promotions.utils.iso_currencies import ISO_CURRENCIES


class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Promotions Engine API"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:///./promotions.db"

    # Environment
    ENVIRONMENT: str = "development"
    ENV: Optional[str] = Field(default=None)

    DEBUG: bool = False

    # Pricing
    PRIMARY_CURRENCY_ISO: str = "USD"

    # Monitoring (Optional - Add to .env for production)
    SENTRY_DSN: str = ""

    # Celery & Redis (Task Queue)
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    USAGE_COUNTERS_ASYNC: bool = False

    @field_validator("ENVIRONMENT")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.lower().strip()

    @field_validator("PRIMARY_CURRENCY_ISO")
    @classmethod
    def validate_primary_currency(cls, value: str) -> str:
        iso = value.upper().strip()
        if iso not in ISO_CURRENCIES:
            raise ValueError(f"Unknown currency: {value}")
        return iso

    @model_validator(mode="after")
    def validate_production_database(self):
        if self.ENVIRONMENT == "production" and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError("DATABASE_URL must point at a server database in production")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
