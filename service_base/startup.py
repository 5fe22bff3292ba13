"""
Startup validation

Runs once before the application starts serving: fails fast on missing
required configuration and records the resolved environment.
"""

import os
from typing import Any, Iterable, Mapping, Optional

import structlog

from service_base.environment import EnvironmentDescriptor
from service_base.exceptions import MissingConfigurationError

STARTUP_MESSAGE = "Starting in {environment_name} on {machine_name}"


def _lookup(config: Any, key: str, environ: Mapping[str, str]) -> Any:
    if isinstance(config, Mapping):
        return config.get(key)

    value = getattr(config, key, None)
    if value is None:
        value = getattr(config, key.lower(), None)
    if value is None:
        extras = getattr(config, "model_extra", None) or {}
        value = extras.get(key, extras.get(key.lower()))
    if value is None:
        # settings ignore undeclared env vars, so read the process environment
        value = environ.get(key, environ.get(key.upper()))
    return value


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def validate_and_log(
    config: Any,
    environment: EnvironmentDescriptor,
    required_keys: Optional[Iterable[str]] = None,
    logger=None,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Validate required configuration, then log the environment

    Args:
        config: Settings instance or plain mapping (never modified)
        environment: resolved environment descriptor
        required_keys: keys that must be present and non-blank
            (defaults to config.get_required_settings(), empty in the template)
        logger: structlog logger (module logger when omitted)
        environ: environment consulted for keys the settings object does not
            carry (defaults to os.environ; not used for plain mappings)

    Raises:
        MissingConfigurationError: first missing or blank key
    """
    logger = logger or structlog.get_logger(__name__)
    environ = os.environ if environ is None else environ

    if required_keys is None:
        getter = getattr(config, "get_required_settings", None)
        required_keys = getter() if getter else ()

    for key in required_keys:
        if _is_blank(_lookup(config, key, environ)):
            raise MissingConfigurationError(key)

    logger.info(
        STARTUP_MESSAGE.format(
            environment_name=environment.name,
            machine_name=environment.machine_name,
        ),
        environment_name=environment.name,
        machine_name=environment.machine_name,
        in_container=environment.in_container,
    )
