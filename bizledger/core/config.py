from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API Settings
    PROJECT_NAME: str = "BizLedger API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Accounts, clients, invoices, debts and payments ledger"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "bizledger"
    # Multi-document transactions need a replica set. When disabled, cascades
    # fall back to compensating writes.
    MONGODB_TRANSACTIONS: bool = True
    TRANSACTION_MAX_RETRIES: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Ledger
    DEFAULT_CURRENCY: str = "USD"
    MAX_AMOUNT_CENTS: int = 100_000_000
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
