"""
SerialSession - local serial link to a usb cable.

Requires pyserial. Availability is checked through the capability probe
before the port is touched, so a runtime without serial support fails with
a DeviceConnectionError instead of an ImportError.
"""

import errno
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


class SerialSession(BaseSession):
    """Session over a serial port named by device.serial_port."""

    def __init__(
        self,
        device: Device,
        time_provider: TimeProvider,
        probe: TransportCapabilityProbe,
        baudrate: int = 115200,
        write_timeout: float = 5.0,
        poll_interval: float = 0.1,
        cancel_event: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__(device, time_provider, poll_interval, cancel_event, logger)
        self.probe = probe
        self.baudrate = baudrate
        self.write_timeout = write_timeout
        self._serial = None
        self._port = None

    def _connect(self) -> None:
        if not self.probe.serial_available():
            raise DeviceConnectionError(
                "Serial capability is not available in this runtime\n"
                "Install pyserial (pip install pyserial) on the orchestration host."
            )

        port_name = self.device.serial_port
        if not port_name:
            raise DeviceConnectionError(f"No serial port configured for {self.device.name}")

        # Lazy import: only needed once the probe has confirmed support
        import serial
        self._serial = serial

        try:
            self._port = serial.Serial(
                port=port_name,
                baudrate=self.baudrate,
                timeout=self.poll_interval,
                write_timeout=self.write_timeout,
            )
        except serial.SerialException as e:
            if getattr(e, 'errno', None) in (errno.EACCES, errno.EPERM) or 'ermission' in str(e):
                raise DeviceConnectionError(
                    f"Permission denied opening {port_name}\n"
                    f"On Linux add your user to the 'dialout' group, then log in again."
                )
            raise DeviceConnectionError(
                f"Could not open serial port {port_name}: {e}\n\n"
                f"Troubleshooting:\n"
                f"  1. Connect the cable directly, avoiding USB hubs\n"
                f"  2. Check the port name (e.g. /dev/ttyUSB0, COM3)"
            )
        except ValueError as e:
            raise DeviceConnectionError(f"Invalid serial parameters for {port_name}: {e}")

    def _disconnect(self) -> None:
        port, self._port = self._port, None
        if port is not None:
            port.close()

    def _write(self, data: bytes) -> None:
        try:
            self._port.write(data)
            self._port.flush()
        except self._serial.SerialTimeoutException:
            raise TransportTimeoutError(
                f"Write to {self.device.serial_port} timed out after {self.write_timeout:.1f}s"
            )
        except self._serial.SerialException as e:
            raise TransportIOError(f"Write to {self.device.serial_port} failed: {e}")

    def _read_chunk(self, timeout: float) -> Optional[bytes]:
        try:
            self._port.timeout = timeout
            data = self._port.read(self._port.in_waiting or 1)
        except self._serial.SerialException as e:
            raise TransportIOError(f"Read from {self.device.serial_port} failed: {e}")
        return data or None
