from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HERALD_", env_file=".env", extra="ignore")

    app_name: str = "herald"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Group
    group_name: str = "default"
    key_prefix: str = "herald:group:"
    watch_poll_interval: float = Field(default=1.0, gt=0)

    # Resubscription after a watch failure (0 attempts = stop for good)
    resubscribe_max_attempts: int = Field(default=0, ge=0)
    resubscribe_delay_initial: float = Field(default=1.0, gt=0)
    resubscribe_delay_max: float = Field(default=60.0, gt=0)
    resubscribe_delay_multiplier: float = Field(default=2.0, ge=1.0)

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
