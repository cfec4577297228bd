from dotenv import load_dotenv
load_dotenv()

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional
import os


def _origins(raw: Optional[str]) -> List[str]:
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_monthly_price_id: Optional[str] = None
    stripe_yearly_price_id: Optional[str] = None
    stripe_currency: str = "usd"
    base_url: str = "http://localhost:3000"
    base_url_prod: Optional[str] = None
    environment: str = "production"
    database_url: str = "sqlite:///data/app.db"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            stripe_monthly_price_id=os.getenv("STRIPE_MONTHLY_PRICE_ID"),
            stripe_yearly_price_id=os.getenv("STRIPE_YEARLY_PRICE_ID"),
            stripe_currency=os.getenv("STRIPE_CURRENCY", "usd"),
            base_url=os.getenv("BASE_URL", "http://localhost:3000"),
            base_url_prod=os.getenv("BASE_URL_PROD"),
            environment=os.getenv("APP_ENV", "production").lower(),
            database_url=os.getenv("DATABASE_URL", "sqlite:///data/app.db"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_origins(os.getenv("CORS_ORIGINS")),
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def public_base_url(self) -> str:
        if self.is_production and self.base_url_prod:
            return self.base_url_prod.rstrip("/")
        return self.base_url.rstrip("/")

    @property
    def allowed_origins(self) -> List[str]:
        return self.cors_origins or [self.public_base_url]

    def price_id_for(self, plan_type: Optional[str]) -> Optional[str]:
        if plan_type == "yearly":
            return self.stripe_yearly_price_id
        return self.stripe_monthly_price_id


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
