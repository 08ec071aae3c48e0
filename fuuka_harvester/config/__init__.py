"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import GlobalConfig, Query, ScrapeConfig

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "GlobalConfig",
    "Query",
    "ScrapeConfig",
]
