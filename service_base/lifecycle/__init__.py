"""
Lifecycle package

Process state machine, in-flight request tracking and the FastAPI lifespan.
"""

from service_base.lifecycle.coordinator import (
    STOPPED_MESSAGE,
    STOPPING_MESSAGE,
    LifecycleCoordinator,
    LifecycleState,
)
from service_base.lifecycle.tracking import InFlightRequestMiddleware, lifespan

__all__ = [
    "STOPPED_MESSAGE",
    "STOPPING_MESSAGE",
    "LifecycleCoordinator",
    "LifecycleState",
    "InFlightRequestMiddleware",
    "lifespan",
]
