# farm_advisory/config.py
import logging
import logging.config
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loads application settings from environment variables or a .env file."""
    model_config = SettingsConfigDict(env_prefix="FARM_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./farm_advisory.db"
    api_prefix: str = "/api"

    # Bearer tokens issued by the local identity provider
    token_ttl_hours: int = 24

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"


def logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"level": level.upper(), "handlers": ["console"]},
    }


def configure_logging(level: str) -> None:
    logging.config.dictConfig(logging_config(level))


# Create a single, reusable instance of the settings
settings = Settings()
