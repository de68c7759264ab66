"""
NetworkSession - TCP link to a network-attached cable.

Targets: cables in Wi-Fi station or access-point mode
Strategy: socket connect with bounded timeout, short-sliced reads
"""

import socket
import threading
from typing import Optional

from phantomhub.core.protocols import Logger, TimeProvider, TransportCapabilityProbe
from phantomhub.models import Device
from phantomhub.transport.base import BaseSession
from phantomhub.transport.exceptions import (
    DeviceConnectionError,
    TransportIOError,
    TransportTimeoutError,
)

RECV_BUFFER_SIZE = 4096


class NetworkSession(BaseSession):
    """Session over a TCP socket to device.ip_address:port."""

    def __init__(
        self,
        device: Device,
        time_provider: TimeProvider,
        probe: TransportCapabilityProbe,
        port: int = 80,
        open_timeout: float = 5.0,
        poll_interval: float = 0.1,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__(device, time_provider, poll_interval, cancel_event, logger)
        self.probe = probe
        self.port = port
        self.open_timeout = open_timeout
        self._sock: Optional[socket.socket] = None

    @property
    def endpoint(self) -> str:
        return f"tcp://{self.device.ip_address}:{self.port}"

    def _connect(self) -> None:
        if not self.probe.network_available():
            raise DeviceConnectionError("Network sockets are not available in this runtime")

        host = self.device.ip_address
        if not host:
            raise DeviceConnectionError(
                f"No IP address configured for {self.device.name}\n"
                f"Set the device's IP address before deploying."
            )

        try:
            sock = socket.create_connection((host, self.port), timeout=self.open_timeout)
        except socket.timeout:
            raise DeviceConnectionError(
                f"Timed out after {self.open_timeout:.1f}s connecting to {self.endpoint}\n\n"
                f"Troubleshooting:\n"
                f"  1. Verify the cable is powered and in Wi-Fi mode\n"
                f"  2. Confirm this host is on the same network as the cable"
            )
        except PermissionError as e:
            raise DeviceConnectionError(f"Permission denied connecting to {self.endpoint}: {e}")
        except OSError as e:
            raise DeviceConnectionError(
                f"Could not reach {self.endpoint}: {e.strerror or e}\n\n"
                f"Troubleshooting:\n"
                f"  1. Check the IP address is correct\n"
                f"  2. Check firewall rules between this host and the cable"
            )
        except (UnicodeError, OverflowError, ValueError) as e:
            raise DeviceConnectionError(f"Invalid address {self.endpoint}: {e}")

        sock.settimeout(self.poll_interval)
        self._sock = sock

    def _disconnect(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    def _write(self, data: bytes) -> None:
        self._sock.settimeout(self.open_timeout)
        try:
            self._sock.sendall(data)
        except socket.timeout:
            raise TransportTimeoutError(f"Send to {self.endpoint} timed out after {self.open_timeout:.1f}s")
        except OSError as e:
            raise TransportIOError(f"Send to {self.endpoint} failed: {e}")
        finally:
            self._sock.settimeout(self.poll_interval)

    def _read_chunk(self, timeout: float) -> Optional[bytes]:
        self._sock.settimeout(timeout)
        try:
            chunk = self._sock.recv(RECV_BUFFER_SIZE)
        except socket.timeout:
            return None
        except OSError as e:
            raise TransportIOError(f"Receive from {self.endpoint} failed: {e}")
        if not chunk:
            raise TransportIOError(f"Connection closed by {self.endpoint}")
        return chunk
