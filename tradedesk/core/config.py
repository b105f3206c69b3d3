"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here; no scattered magic strings.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_enabled: Turn slowapi rate limiting on or off.
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_heavy: Rate limit for endpoints that call the broker.
        database_url: Full SQLAlchemy URL for the ledger. When unset the
            DSN is assembled from the postgres_* values.
        auto_create_schema: Create ledger tables on startup.
        broker_api_key: Broker API key id.
        broker_secret_key: Broker API secret.
        broker_base_url: Broker trading API root (paper trading by default).
        broker_timeout_seconds: Timeout for every broker HTTP call.
        position_stale_minutes: Age after which a mirrored position is reported stale.
        recent_trades_limit: Number of trades shown on the dashboard.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "TradeDesk"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_enabled: bool = True
    rate_limit_default: str = "60/minute"
    rate_limit_heavy: str = "10/minute"

    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "tradedesk"
    auto_create_schema: bool = False

    broker_api_key: str = ""
    broker_secret_key: str = ""
    broker_base_url: str = "https://paper-api.alpaca.markets"
    broker_timeout_seconds: float = 30.0

    position_stale_minutes: int = 15
    recent_trades_limit: int = 10

    def get_database_dsn(self) -> str:
        """Return the effective DSN for the ledger database.

        Priority:
        1. Explicit `DATABASE_URL`
        2. Build DSN from postgres_* values (useful for Docker Compose or local setups)
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
