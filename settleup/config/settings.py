from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    db_name: str = Field(default="settleup", alias="DB_NAME")
    db_user: str = Field(default="postgres", alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")

    # Full URL wins over the components above (e.g. sqlite+aiosqlite:///settleup.db)
    database_url_override: str | None = Field(default=None, alias="DATABASE_URL")

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Money settings
    currency_digits: int = Field(default=2, ge=0, le=4, alias="CURRENCY_DIGITS")
    default_currency: str = Field(default="INR", alias="DEFAULT_CURRENCY")

    # Balances within this many minor units of zero count as settled
    settle_tolerance: int = Field(default=1, ge=0, alias="SETTLE_TOLERANCE")

    # Seconds to wait on the database before failing with a retryable error
    storage_timeout: float = Field(default=5.0, gt=0, alias="STORAGE_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


# Global settings instance
settings = Settings()
