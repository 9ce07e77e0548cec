import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

_DEFAULT_CRON_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    DATABASE_URL: str = "sqlite:///./data/school_assets.db"
    LOG_LEVEL: str = "INFO"

    # Persistence retries for transient errors (locks, dropped connections)
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_BACKOFF_SECONDS: float = 0.05

    # SLA resolution windows in hours
    SLA_URGENT_HOURS: int = 2
    SLA_HIGH_HOURS: int = 8
    SLA_MEDIUM_HOURS: int = 24
    SLA_LOW_HOURS: int = 72
    SLA_AT_RISK_PERCENT: int = 20

    # Borrow signature links
    SIGNATURE_TOKEN_TTL_HOURS: int = 168

    # Shared secret for the external scheduler calling the SLA sweep
    CRON_SECRET: str = _DEFAULT_CRON_SECRET

    # Whole modules switched off for everyone (e.g. "purchase_orders")
    DISABLED_MODULES: list[str] = []

    class Config:
        env_file = ".env"


settings = Settings()

if settings.CRON_SECRET == _DEFAULT_CRON_SECRET:
    if settings.APP_ENV == "production":
        raise RuntimeError("CRON_SECRET must be set in production! Check your .env file.")
    else:
        logger.warning("CRON_SECRET has its default value, set it in .env for production")

if not 0 < settings.SLA_AT_RISK_PERCENT < 100:
    raise RuntimeError("SLA_AT_RISK_PERCENT must be between 1 and 99")
