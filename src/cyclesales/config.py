"""
Runtime settings for the analytics pipeline.

Values come from environment variables prefixed with CYCLESALES_
(or a local .env file), e.g. CYCLESALES_MIN_SUPPORT=0.005.
"""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsSettings(BaseSettings):
    """Tunable thresholds for mining, forecasting and reporting."""

    model_config = SettingsConfigDict(
        env_prefix="CYCLESALES_", env_file=".env", extra="ignore", frozen=True
    )

    # Association mining
    min_support: float = 0.001  # 0.1% of baskets

    # Forecasting
    min_cycles: int = 3
    growing_top_n: int = 10

    # Reporting
    export_top_n: int = 20
    include_non_sales: bool = False

    log_level: str = "INFO"


@lru_cache
def get_settings() -> AnalyticsSettings:
    return AnalyticsSettings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
