"""
Device transport subsystem.

Provides one session interface with two variants:
    - SerialSession: local serial port (usb cables)
    - NetworkSession: TCP socket (network cables)

Public API:
    - TransportSession: Protocol interface
    - SessionFactory: Build sessions for devices, parse addresses
    - CommandChannel: Line-oriented command/response framing
    - Transport exceptions
"""

from .base import TransportSession, BaseSession, SessionState
from .factory import SessionFactory
from .protocol import CommandChannel, CommandResponse, parse_response
from .exceptions import (
    TransportError,
    DeviceConnectionError,
    TransportTimeoutError,
    TransportIOError,
    DeploymentCancelled,
)

__all__ = [
    # Protocol and types
    "TransportSession",
    "BaseSession",
    "SessionState",

    # Factory
    "SessionFactory",

    # Framing
    "CommandChannel",
    "CommandResponse",
    "parse_response",

    # Exceptions
    "TransportError",
    "DeviceConnectionError",
    "TransportTimeoutError",
    "TransportIOError",
    "DeploymentCancelled",
]
