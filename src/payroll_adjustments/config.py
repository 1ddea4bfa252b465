"""Configuration management for payroll adjustments."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    api_base_url: str
    api_token: str | None
    request_timeout_seconds: float
    log_level: str
    currency: str

    @property
    def API_BASE_URL(self) -> str:
        """Alias for api_base_url."""
        return self.api_base_url

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            api_base_url=os.getenv(
                "API_BASE_URL",
                os.getenv("API_URL", "http://localhost:5000/api"),
            ).rstrip("/"),
            api_token=os.getenv("API_TOKEN") or None,
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            currency=os.getenv("CURRENCY", "PKR"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the configured log level to the package logger."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("payroll_adjustments").setLevel(settings.log_level)
