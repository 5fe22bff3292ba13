"""
Configuration package: settings and structured logging
"""

from service_base.config.settings import (
    CONTAINER_ENV_FILE,
    CONTAINER_ENV_VAR,
    Settings,
    is_running_in_container,
    load_settings,
)

__all__ = [
    "CONTAINER_ENV_FILE",
    "CONTAINER_ENV_VAR",
    "Settings",
    "is_running_in_container",
    "load_settings",
]
