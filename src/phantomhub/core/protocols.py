"""Protocol definitions for dependency injection.

Every external effect the orchestration core depends on (console output,
clocks, configuration files, runtime transport capabilities) is expressed
as a Protocol. Any object with matching methods satisfies the Protocol,
so tests can pass a Mock(spec=...) or a small fake without inheritance.
"""

from datetime import datetime
from typing import Protocol, Dict, Any


class Logger(Protocol):
    """Abstraction for logging operations."""

    def info(self, message: str) -> None:
        """Log informational message."""
        ...

    def warning(self, message: str) -> None:
        """Log warning message."""
        ...

    def error(self, message: str) -> None:
        """Log error message."""
        ...

    def debug(self, message: str) -> None:
        """Log debug message."""
        ...


class TimeProvider(Protocol):
    """Abstraction for time operations.

    Deadlines use monotonic(); persisted timestamps use now().
    """

    def now(self) -> datetime:
        """Current wall-clock time (timezone-aware, UTC)."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, for measuring timeouts."""
        ...

    def sleep(self, seconds: float) -> None:
        """Sleep for specified number of seconds."""
        ...


class ConfigLoader(Protocol):
    """Abstraction for configuration file loading."""

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary."""
        ...


class TransportCapabilityProbe(Protocol):
    """Answers whether the current runtime can use a transport at all.

    Used by the diagnostics engine for its automatically determinable
    checks, and by sessions before attempting to open.
    """

    def serial_available(self) -> bool:
        """True if a serial backend can be used in this runtime."""
        ...

    def network_available(self) -> bool:
        """True if TCP sockets can be created in this runtime."""
        ...
