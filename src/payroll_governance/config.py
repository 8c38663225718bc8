"""Configuration management for payroll governance."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    log_level: str
    run_id_prefix: str
    minimum_base_salary: Decimal
    echo_sql: bool

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./payroll_governance.db",
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            run_id_prefix=os.getenv("RUN_ID_PREFIX", "PR"),
            minimum_base_salary=Decimal(os.getenv("MINIMUM_BASE_SALARY", "6000")),
            echo_sql=os.getenv("ECHO_SQL", "false").lower() == "true",
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for CLI use."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
