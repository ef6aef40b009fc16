from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration, read once at start-up."""

    model_config = SettingsConfigDict(
        env_prefix="TRON_EVENTS_",
        env_file=".env",
        extra="ignore",
    )

    # Redis Cache
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL"
    )
    CACHE_TTL: int = Field(
        default=3600,
        gt=0,
        description="Seconds an event stays cached after its last write"
    )
    DEFAULT_PAGE_SIZE: int = Field(
        default=20,
        gt=0,
        description="Events returned per page by contract address queries"
    )

    # Database
    DB_URL: str = Field(
        default="sqlite:///data/tron-events.db",
        description="SQLAlchemy URL of the durable events log"
    )

    # Monitoring
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = False


def get_settings(**overrides) -> Settings:
    """Build settings from the environment, with explicit overrides on top."""
    return Settings(**overrides)
