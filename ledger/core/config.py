from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Customer Ledger"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/ledger.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Single system-wide currency; amounts are kept as integer minor units
    CURRENCY: str = "NGN"
    CURRENCY_MINOR_UNITS: int = 2
    # Largest accepted amount in minor units; stays inside a signed 64-bit column
    MAX_AMOUNT_MINOR_UNITS: int = Field(default=10**15, gt=0, le=2**63 - 1)

    # How many times a conflicting allocation is re-run with fresh balances
    ALLOCATION_MAX_RETRIES: int = 3

    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"


settings = Settings()
