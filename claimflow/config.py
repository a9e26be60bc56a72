"""
Configuration

Runtime settings read from ``CLAIMFLOW_``-prefixed environment variables or a
``.env`` file: service identity, logging, reviewer-queue page sizes, the
integration poll interval and the currency shown in notifications.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLAIMFLOW_", env_file=".env", extra="ignore")

    app_name: str = "ClaimFlow Review Workflow"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    # reviewer queues
    default_page_size: int = 10
    max_page_size: int = 100

    # integration-side polling (unread counts, queue refresh)
    poll_interval_seconds: float = 30.0

    currency_code: str = "ILS"


settings = Settings()
