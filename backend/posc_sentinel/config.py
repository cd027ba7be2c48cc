"""Runtime settings.

Reads configuration from environment variables (a ``.env`` file is loaded
first):
  DATABASE_URL                   : SQLAlchemy URL (default local SQLite)
  MONITORING_INTERVAL_SECONDS    : polling interval (default 300)
  MONITORING_AUTOSTART           : start the scheduler with the app
  STRIPE_API_KEY / STRIPE_API_BASE : payment-intent source
  GROWTH_RATE_THRESHOLD          : alert threshold as a fraction
  FUNDING_ELIGIBILITY_THRESHOLD  : score cutoff for FUNDING_ELIGIBLE
  LOG_LEVEL / DEBUG
"""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from . import constants

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class MonitoringSettings(BaseModel):
    """Resolved runtime configuration."""

    database_url: str = "sqlite:///./posc_sentinel.db"
    monitoring_interval_seconds: int = Field(300, gt=0)
    monitoring_autostart: bool = False
    stripe_api_key: str = ""
    stripe_api_base: str = "https://api.stripe.com/v1"
    growth_rate_threshold: float = Field(
        constants.GROWTH_RATE_THRESHOLD_FRACTION,
        ge=0.0,
        description="Latest revenue growth (fraction) that raises GROWTH_THRESHOLD",
    )
    funding_eligibility_threshold: int = Field(
        constants.FUNDING_ELIGIBILITY_THRESHOLD,
        ge=0,
        le=100,
    )
    log_level: str = "INFO"
    debug: bool = False


def get_settings() -> MonitoringSettings:
    """Build settings from the current environment."""
    return MonitoringSettings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./posc_sentinel.db"),
        monitoring_interval_seconds=int(os.getenv("MONITORING_INTERVAL_SECONDS", "300")),
        monitoring_autostart=_env_bool("MONITORING_AUTOSTART"),
        stripe_api_key=os.getenv("STRIPE_API_KEY", "").strip(),
        stripe_api_base=os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1"),
        growth_rate_threshold=float(
            os.getenv("GROWTH_RATE_THRESHOLD", str(constants.GROWTH_RATE_THRESHOLD_FRACTION))
        ),
        funding_eligibility_threshold=int(
            os.getenv("FUNDING_ELIGIBILITY_THRESHOLD", str(constants.FUNDING_ELIGIBILITY_THRESHOLD))
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        debug=_env_bool("DEBUG"),
    )
