"""Environment settings for vetguard.

Values come from `VETGUARD_*` environment variables or a `.env` file and
act as defaults underneath the YAML config and CLI flags.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Config file
    config_path: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # Evaluation
    max_workers: int = Field(default=1, ge=1)
    default_suite: str = "general"

    model_config = SettingsConfigDict(
        env_prefix="VETGUARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
