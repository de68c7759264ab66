"""
TransportSession Protocol - one interface over serial and network links.

The orchestrator and diagnostics engine depend only on TransportSession.
BaseSession implements the lifecycle shared by both variants (state
tracking, cancellation checks, last_seen updates, the polling read loop);
variants supply _connect/_disconnect/_write/_read_chunk.
"""

import threading
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from phantomhub.core.protocols import Logger, TimeProvider
from phantomhub.models import Device
from phantomhub.transport.exceptions import (
    DeploymentCancelled,
    TransportIOError,
    TransportTimeoutError,
)


class SessionState(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


@runtime_checkable
class TransportSession(Protocol):
    """
    A link to exactly one device for the session's lifetime.

    Implementations:
        - SerialSession: local serial port (usb cables)
        - NetworkSession: TCP socket (network cables)
    """

    device: Device
    state: SessionState

    def open(self) -> "TransportSession":
        """
        Acquire the link.

        Raises:
            DeviceConnectionError: capability missing, permission denied,
                address unreachable, or timeout
            DeploymentCancelled: cancellation was requested
        """
        ...

    def send(self, data: bytes) -> None:
        """
        Write data. No retry.

        Raises:
            TransportIOError, TransportTimeoutError, DeploymentCancelled
        """
        ...

    def receive(self, timeout: float) -> bytes:
        """
        Block up to timeout seconds for at least one byte.

        Raises:
            TransportTimeoutError, TransportIOError, DeploymentCancelled
        """
        ...

    def close(self) -> None:
        """Release the link. Idempotent; never raises."""
        ...


class BaseSession:
    """Shared lifecycle for session variants."""

    def __init__(
        self,
        device: Device,
        time_provider: TimeProvider,
        poll_interval: float = 0.1,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        self.device = device
        self.log = logger
        self.time = time_provider
        self.poll_interval = poll_interval
        self.cancel_event = cancel_event or threading.Event()
        self.state = SessionState.UNOPENED
        self.close_count = 0

    # Variant hooks

    def _connect(self) -> None:
        raise NotImplementedError

    def _disconnect(self) -> None:
        raise NotImplementedError

    def _write(self, data: bytes) -> None:
        raise NotImplementedError

    def _read_chunk(self, timeout: float) -> Optional[bytes]:
        """Read what is available within timeout; None if nothing arrived."""
        raise NotImplementedError

    # Lifecycle

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise DeploymentCancelled(f"Deployment cancelled while talking to {self.device.name}")

    def _touch(self) -> None:
        self.device.last_seen = self.time.now()

    def _require_open(self, operation: str) -> None:
        if self.state != SessionState.OPEN:
            raise TransportIOError(f"Cannot {operation}: session to {self.device.name} is {self.state.value}")

    def open(self) -> "BaseSession":
        if self.state == SessionState.OPEN:
            return self
        if self.state == SessionState.CLOSED:
            raise TransportIOError(f"Session to {self.device.name} was closed and cannot be reopened")

        self._check_cancelled()
        self._connect()
        self.state = SessionState.OPEN

        # Connect may block up to the open timeout; honour a cancel that
        # arrived meanwhile.
        if self.cancel_event.is_set():
            self.close()
            self._check_cancelled()

        self._touch()
        return self

    def send(self, data: bytes) -> None:
        self._require_open("send")
        self._check_cancelled()
        self._write(data)
        self._touch()

    def receive(self, timeout: float) -> bytes:
        self._require_open("receive")
        deadline = self.time.monotonic() + timeout

        while True:
            self._check_cancelled()
            remaining = deadline - self.time.monotonic()
            if remaining <= 0:
                raise TransportTimeoutError(
                    f"No data from {self.device.name} within {timeout:.1f}s"
                )
            chunk = self._read_chunk(min(self.poll_interval, remaining))
            if chunk:
                self._touch()
                return chunk

    def close(self) -> None:
        if self.state == SessionState.CLOSED:
            return
        was_open = self.state == SessionState.OPEN
        self.state = SessionState.CLOSED
        self.close_count += 1
        if was_open:
            try:
                self._disconnect()
            except Exception as e:
                if self.log is not None:
                    self.log.warning(f"Error while closing session to {self.device.name}: {e}")

    def __enter__(self) -> "BaseSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
