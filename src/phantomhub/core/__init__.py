"""Core dependency injection infrastructure for PhantomHub.

Protocol-based abstractions (typing.Protocol) for every external
dependency, with production implementations alongside.
"""

from phantomhub.core.protocols import (
    Logger,
    TimeProvider,
    ConfigLoader,
    TransportCapabilityProbe,
)

from phantomhub.core.implementations import (
    ConsoleLogger,
    SystemTimeProvider,
    YamlConfigLoader,
    SystemCapabilityProbe,
)

__all__ = [
    # Protocols
    "Logger",
    "TimeProvider",
    "ConfigLoader",
    "TransportCapabilityProbe",
    # Implementations
    "ConsoleLogger",
    "SystemTimeProvider",
    "YamlConfigLoader",
    "SystemCapabilityProbe",
]
