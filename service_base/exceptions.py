"""
Custom exceptions and error codes
"""
from enum import Enum
from typing import Optional

from fastapi import status


class ErrorCode(Enum):
    """Error codes returned in JSON error bodies"""

    # Authentication (AUTH)
    UNAUTHORIZED = ("AUTH001", "Unauthorized", status.HTTP_401_UNAUTHORIZED)
    INVALID_TOKEN = ("AUTH002", "Invalid or expired token", status.HTTP_401_UNAUTHORIZED)

    # System (SYSTEM)
    INTERNAL_SERVER_ERROR = ("SYSTEM001", "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    def __init__(self, code: str, message: str, http_status: int):
        self.code = code
        self.message = message
        self.http_status = http_status


class ServiceBaseError(Exception):
    """Base class for startup and lifecycle failures"""


class PipelineOrderingError(ServiceBaseError):
    """A stage was registered in a position that breaks the security ordering"""

    def __init__(self, stage_name: str, hint: Optional[str], reason: str):
        self.stage_name = stage_name
        self.hint = hint
        self.reason = reason
        super().__init__(
            f"Invalid pipeline ordering for stage '{stage_name}' (hint: {hint}): {reason}"
        )


class MissingConfigurationError(ServiceBaseError):
    """A required configuration key is absent or blank"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Missing required configuration: {key}")


class LifecycleTransitionError(ServiceBaseError):
    """A lifecycle operation was requested in a state that does not allow it"""
