"""
SessionFactory - build the right session variant for a device.

Address formats understood by parse_address():
    tcp://host[:port]       → network, explicit port
    192.168.4.1             → network, configured default port
    serial:///dev/ttyUSB0   → usb
    serial://COM3           → usb
"""

import threading
from typing import Optional, Tuple

from phantomhub.core.protocols import Logger, TimeProvider, TransportCapabilityProbe
from phantomhub.models import ConnectionType, Device
from phantomhub.transport.base import BaseSession
from phantomhub.transport.network_session import NetworkSession
from phantomhub.transport.serial_session import SerialSession
from phantomhub.utils.config import Settings


class SessionFactory:
    """Creates unopened sessions; the caller owns open/close."""

    def __init__(
        self,
        settings: Settings,
        probe: TransportCapabilityProbe,
        time_provider: TimeProvider,
        logger: Optional[Logger] = None,
    ):
        self.settings = settings
        self.probe = probe
        self.time = time_provider
        self.log = logger

    def create(self, device: Device, cancel_event: Optional[threading.Event] = None) -> BaseSession:
        """
        Return an unopened session bound to device.

        Raises:
            ValueError: If the device's connection type is unknown
        """
        transport = self.settings.transport
        timeouts = self.settings.timeouts

        if device.connection_type == ConnectionType.NETWORK:
            return NetworkSession(
                device,
                self.time,
                self.probe,
                port=transport.network_port,
                open_timeout=timeouts.open_seconds,
                poll_interval=transport.poll_interval_seconds,
                cancel_event=cancel_event,
                logger=self.log,
            )
        if device.connection_type == ConnectionType.USB:
            return SerialSession(
                device,
                self.time,
                self.probe,
                baudrate=transport.serial_baudrate,
                write_timeout=timeouts.ack_seconds,
                poll_interval=transport.poll_interval_seconds,
                cancel_event=cancel_event,
                logger=self.log,
            )
        raise ValueError(f"Unsupported connection type: {device.connection_type}")

    @staticmethod
    def parse_address(text: str, default_port: int = 80) -> Tuple[ConnectionType, str, Optional[int]]:
        """
        Parse an address string into (connection type, address, port).

        Port is None for serial addresses.

        Raises:
            ValueError: If format not recognized
        """
        if not text:
            raise ValueError("Empty device address")

        if text.startswith('serial://'):
            port_name = text[len('serial://'):]
            if not port_name:
                raise ValueError(f"Missing serial port in {text}")
            return ConnectionType.USB, port_name, None

        if text.startswith('tcp://'):
            host_part = text[len('tcp://'):]
            if ':' in host_part:
                host, port_str = host_part.rsplit(':', 1)
                try:
                    port = int(port_str)
                except ValueError:
                    raise ValueError(f"Invalid port in {text}")
            else:
                host, port = host_part, default_port
            if not host:
                raise ValueError(f"Missing host in {text}")
            return ConnectionType.NETWORK, host, port

        if text.replace('.', '').isdigit() and text.count('.') == 3:
            return ConnectionType.NETWORK, text, default_port

        raise ValueError(
            f"Unknown device address format: {text}\n"
            f"Expected: tcp://host[:port] | serial:///dev/device | serial://COMn | a.b.c.d"
        )
