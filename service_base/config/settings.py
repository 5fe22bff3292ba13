"""
Application Settings (Pydantic Settings)

Environment variables and .env files are loaded into a typed settings object.
When the process runs inside a container, a container-specific settings file
is layered on top before any component starts.
"""

import os
from typing import List, Mapping, Optional

from pydantic_settings import BaseSettings

# Set to "true" by container images
CONTAINER_ENV_VAR = "RUNNING_IN_CONTAINER"

DEFAULT_ENV_FILE = ".env"
CONTAINER_ENV_FILE = ".env.container"


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "service-base"
    app_env: str = "development"  # "development", "staging", "production", ...

    # Listener
    host: str = "0.0.0.0"
    port: int = 8000
    keep_alive_timeout: int = 120  # seconds
    request_headers_timeout: int = 30  # seconds
    shutdown_timeout: int = 30  # seconds, bound on connection drain
    https_port: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    log_verbose: bool = False
    request_logging_enabled: bool = False
    request_logging_verbose: bool = False

    # Health probe
    health_path: str = "/health"

    # Static content (disabled when no directory is configured)
    static_directory: Optional[str] = None
    static_url_prefix: str = "/static"

    # JWT Authentication
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    protected_path_prefixes: str = ""  # comma separated, e.g. "/api/admin,/api/private"

    # Startup validation: comma separated keys that must be present and non-blank
    required_settings: str = ""

    class Config:
        env_file = DEFAULT_ENV_FILE
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"  # adopter-defined keys stay readable for startup validation

    def get_required_settings(self) -> List[str]:
        """Required configuration keys"""
        return _split_csv(self.required_settings)

    def get_protected_path_prefixes(self) -> List[str]:
        """Path prefixes that require an authenticated user"""
        return _split_csv(self.protected_path_prefixes)


def _split_csv(value: str) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def is_running_in_container(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Container indicator: only the literal "true" enables it"""
    environ = os.environ if environ is None else environ
    return environ.get(CONTAINER_ENV_VAR, "").strip().lower() == "true"


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """
    Load settings, layering the container settings file when containerized

    Later env files win, so values in .env.container override .env.
    Missing files are skipped.

    Args:
        environ: environment used for container detection (defaults to os.environ)
        **overrides: explicit field values, highest priority

    Returns:
        Settings instance
    """
    env_files = [DEFAULT_ENV_FILE]
    if is_running_in_container(environ):
        env_files.append(CONTAINER_ENV_FILE)

    return Settings(_env_file=tuple(env_files), **overrides)
