"""Fixed, ordered connection checklists per transport type.

Each check is either automatic (evaluated from runtime facts through the
capability probe or the configured address) or operator-attested (the
operator reports whether the issue is resolved).
"""
import ipaddress
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from phantomhub.core.protocols import TransportCapabilityProbe
from phantomhub.models import ConnectionType


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DiagnosticContext:
    """Facts available to automatic checks."""
    connection_type: ConnectionType
    address: Optional[str]
    probe: TransportCapabilityProbe


@dataclass(frozen=True)
class CheckDefinition:
    id: str
    title: str
    description: str
    remediation: str
    evaluate: Optional[Callable[[DiagnosticContext], bool]] = None
    # A failing gate check blocks every later check in the list
    gate: bool = False

    @property
    def automatic(self) -> bool:
        return self.evaluate is not None


@dataclass(frozen=True)
class CheckResult:
    check_id: str
    title: str
    status: CheckStatus
    remediation: str
    automatic: bool
    blocked_by: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS

    @property
    def failed(self) -> bool:
        return self.status == CheckStatus.FAIL


def is_valid_ipv4(address: Optional[str]) -> bool:
    """Dotted-quad IPv4 with every octet in 0-255."""
    if not address:
        return False
    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True


USB_CHECKS: List[CheckDefinition] = [
    CheckDefinition(
        id='serial_capability',
        title='Serial Capability',
        description='Check that this runtime can open serial ports at all',
        remediation='Install pyserial on the orchestration host (pip install pyserial) '
                    'and run it on a machine with local USB access.',
        evaluate=lambda ctx: ctx.probe.serial_available(),
        gate=True,
    ),
    CheckDefinition(
        id='connected',
        title='Physical Connection',
        description='Verify that the device is physically connected to this computer',
        remediation='Connect the cable directly to a USB port on this computer. '
                    'Avoid using USB hubs if possible.',
    ),
    CheckDefinition(
        id='permissions',
        title='USB Permissions',
        description="Check that the current user may access the serial port",
        remediation="Grant access to the port: on Linux add the user to the 'dialout' group; "
                    "on other systems allow access when prompted.",
    ),
    CheckDefinition(
        id='driver',
        title='Driver Issues',
        description='Check for USB driver problems',
        remediation='On Windows, check Device Manager for devices with warning icons. '
                    'On Mac, check System Information > USB. On Linux, check dmesg.',
    ),
    CheckDefinition(
        id='cable_mode',
        title='Device Operation Mode',
        description='Verify the cable is in the correct mode',
        remediation='Ensure the device is not in a firmware update or special operation mode. '
                    'Try disconnecting and reconnecting the device.',
    ),
]

NETWORK_CHECKS: List[CheckDefinition] = [
    CheckDefinition(
        id='network',
        title='Network Connectivity',
        description='Check that this computer is on the same network as the device',
        remediation="Connect to the same Wi-Fi network as the cable, or directly to the "
                    "cable's access point if applicable.",
    ),
    CheckDefinition(
        id='ip_address',
        title='IP Address Verification',
        description='Verify that the IP address is a valid IPv4 address',
        remediation="Enter a valid IP address in the format 192.168.1.x. Check the device's "
                    "actual IP address from its configuration.",
        evaluate=lambda ctx: is_valid_ipv4(ctx.address),
    ),
    CheckDefinition(
        id='firewall',
        title='Firewall Settings',
        description='Check whether a firewall is blocking the connection',
        remediation='Temporarily disable the firewall or add an exception for this host '
                    'to reach the cable.',
    ),
    CheckDefinition(
        id='device_power',
        title='Device Power',
        description='Verify the device is powered on and has sufficient battery',
        remediation='Ensure the device is powered on and charged. In Wi-Fi mode the '
                    'battery level is critical.',
    ),
    CheckDefinition(
        id='device_mode',
        title='Wi-Fi Mode',
        description='Check that the device is in Wi-Fi mode',
        remediation='Ensure the device has Wi-Fi enabled and is configured for network connectivity.',
    ),
]

CHECKLISTS: Dict[ConnectionType, List[CheckDefinition]] = {
    ConnectionType.USB: USB_CHECKS,
    ConnectionType.NETWORK: NETWORK_CHECKS,
}
