"""
Configuration module
"""
from chainwatch.config.settings import (
    settings,
    Settings,
    APIConfig,
    UpstreamConfig,
    SessionConfig,
    HarvestConfig,
    ScheduleConfig,
    LoggerConfig,
)

__all__ = [
    "settings",
    "Settings",
    "APIConfig",
    "UpstreamConfig",
    "SessionConfig",
    "HarvestConfig",
    "ScheduleConfig",
    "LoggerConfig",
]
