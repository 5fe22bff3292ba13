"""
Application Lifecycle Coordinator

Drives the process through a one-directional state machine:

    CONFIGURING -> SERVING -> STOPPING -> DRAINED

- SERVING: pipeline built, requests accepted
- STOPPING: termination requested, in-flight requests allowed to finish
- DRAINED: in-flight requests done (or drain timeout hit), log sink flushed

Transitions are event driven and serialized by a lock. Duplicate
termination signals are no-ops.
"""

import asyncio
import threading
from enum import Enum
from typing import Callable, List, Optional

import structlog

from service_base.config.logging import LogSink
from service_base.exceptions import LifecycleTransitionError

STOPPING_MESSAGE = "Application is stopping..."
STOPPED_MESSAGE = "Application stopped."

Callback = Callable[[], None]


class LifecycleState(str, Enum):
    """Process lifecycle states"""
    CONFIGURING = "configuring"
    SERVING = "serving"
    STOPPING = "stopping"
    DRAINED = "drained"


class LifecycleCoordinator:
    """
    Process-wide lifecycle state machine

    Only the current state is shared mutable state. The in-flight counter
    is touched from the event loop that serves requests.
    """

    def __init__(
        self,
        sink: Optional[LogSink] = None,
        drain_timeout: float = 30.0,
        logger=None,
    ):
        self.sink = sink
        self.drain_timeout = drain_timeout
        self._logger = logger or structlog.get_logger(__name__)

        self._state = LifecycleState.CONFIGURING
        self._lock = threading.Lock()

        self._started: List[Callback] = []
        self._stopping: List[Callback] = []
        self._stopped: List[Callback] = []

        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def accepting(self) -> bool:
        return self._state in (LifecycleState.CONFIGURING, LifecycleState.SERVING)

    # Callback registration

    def on_started(self, callback: Callback) -> Callback:
        self._started.append(callback)
        return callback

    def on_stopping(self, callback: Callback) -> Callback:
        self._stopping.append(callback)
        return callback

    def on_stopped(self, callback: Callback) -> Callback:
        self._stopped.append(callback)
        return callback

    # Transitions

    def _transition(self, expected: LifecycleState, target: LifecycleState, blocking: bool = True) -> bool:
        if not self._lock.acquire(blocking=blocking):
            return False
        try:
            if self._state is not expected:
                return False
            self._state = target
            return True
        finally:
            self._lock.release()

    def mark_serving(self) -> bool:
        """CONFIGURING -> SERVING; no-op in any other state"""
        if not self._transition(LifecycleState.CONFIGURING, LifecycleState.SERVING):
            return False

        self._logger.info("application_started", state=self._state.value)
        _run_callbacks(self._started)
        return True

    def begin_shutdown(self, blocking: bool = True) -> bool:
        """
        SERVING -> STOPPING

        Args:
            blocking: wait for the state lock; signal handlers pass False
                since they may interrupt a thread that already holds it

        Returns:
            True when this call performed the transition, False for
            duplicate or out-of-order requests (or a busy lock when
            not blocking)
        """
        if not self._transition(LifecycleState.SERVING, LifecycleState.STOPPING, blocking=blocking):
            self._logger.debug("shutdown_request_ignored", state=self._state.value)
            return False

        self._logger.info(STOPPING_MESSAGE, in_flight=self._in_flight)
        _run_callbacks(self._stopping)
        return True

    def mark_drained(self) -> bool:
        """
        STOPPING -> DRAINED

        Flushes buffered records, writes the stopped record, then closes
        the sink. Terminal.
        """
        if not self._transition(LifecycleState.STOPPING, LifecycleState.DRAINED):
            return False

        if self.sink is not None:
            self.sink.flush()
        self._logger.info(STOPPED_MESSAGE)
        _run_callbacks(self._stopped)
        if self.sink is not None:
            self.sink.close_and_flush()
        return True

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Stop, wait for in-flight requests, then mark drained

        Args:
            timeout: seconds to wait for in-flight requests (drain_timeout when omitted)

        Returns:
            Number of requests still in flight when the timeout elapsed
        """
        if self._state is LifecycleState.CONFIGURING:
            raise LifecycleTransitionError("Cannot drain before the application is serving")

        self.begin_shutdown()
        timeout = self.drain_timeout if timeout is None else timeout

        abandoned = 0
        if self._in_flight:
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                abandoned = self._in_flight
                self._logger.warning(
                    "drain_timeout_exceeded",
                    abandoned_requests=abandoned,
                    timeout_seconds=timeout,
                )

        self.mark_drained()
        return abandoned

    # In-flight tracking

    def request_started(self) -> None:
        self._in_flight += 1
        self._idle.clear()

    def request_finished(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self._idle.set()


def _run_callbacks(callbacks: List[Callback]) -> None:
    for callback in list(callbacks):
        callback()
