
from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "CarrierGate API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # Database (Postgres via asyncpg in production, SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./carriergate_dev.db",
        alias="DATABASE_URL",
    )
    db_isolation_level: str | None = Field(
        default=None, alias="DB_ISOLATION_LEVEL",
    )  # e.g. "SERIALIZABLE"; None keeps the driver default

    # Carrier access tokens
    token_bytes: int = Field(default=32, ge=32, alias="TOKEN_BYTES")

    # Workflow
    max_write_attempts: int = Field(
        default=3, ge=1, alias="MAX_WRITE_ATTEMPTS",
    )  # Re-read-and-retry budget when a concurrent write is detected
    sweep_batch_size: int = Field(default=500, ge=1, alias="SWEEP_BATCH_SIZE")

    # Trusted-server boundary (disabled when unset)
    server_api_key: str | None = Field(default=None, alias="SERVER_API_KEY")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def server_key_required(self) -> bool:
        """Trusted-server routes check X-Server-Key only when a key is configured."""
        return bool(self.server_api_key)

settings = Settings()
