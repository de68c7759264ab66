"""
Domain records for devices, payloads and deployments.

These are plain dataclasses; persistence lives behind
phantomhub.store.base.DeploymentRepository.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class ConnectionType(str, Enum):
    """Transport used to reach a device. Fixed at device creation."""
    NETWORK = "network"
    USB = "usb"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"


class DeploymentStatus(str, Enum):
    """
    Deployment lifecycle.

    pending -> connected -> executing -> {completed | failed}
    completed and failed are terminal.
    """
    PENDING = "pending"
    CONNECTED = "connected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.COMPLETED, DeploymentStatus.FAILED)

    @property
    def is_active(self) -> bool:
        """True while the deployment owns its device (connected/executing)."""
        return self in (DeploymentStatus.CONNECTED, DeploymentStatus.EXECUTING)


@dataclass
class Device:
    """
    A registered cable.

    Exactly one of ip_address / serial_port is meaningful, selected by
    connection_type.
    """
    id: str
    name: str
    connection_type: ConnectionType
    status: DeviceStatus = DeviceStatus.OFFLINE
    ip_address: Optional[str] = None
    serial_port: Optional[str] = None
    last_seen: Optional[datetime] = None

    @property
    def address(self) -> Optional[str]:
        """Transport-specific address for this device."""
        if self.connection_type == ConnectionType.NETWORK:
            return self.ip_address
        return self.serial_port

    def describe(self) -> str:
        return f"{self.name} ({self.connection_type.value}: {self.address or 'unset'})"


@dataclass(frozen=True)
class Payload:
    """A script definition. Immutable; edits produce a new version."""
    id: str
    name: str
    script: str
    version: str = "1"


@dataclass
class Deployment:
    """
    One attempt to run a payload on a device.

    result stays None until the deployment reaches a terminal status.
    """
    id: str
    payload_id: str
    device_id: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    result: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def with_status(self, status: DeploymentStatus, result: Optional[str],
                    updated_at: Optional[datetime]) -> "Deployment":
        return replace(self, status=status, result=result, updated_at=updated_at)
