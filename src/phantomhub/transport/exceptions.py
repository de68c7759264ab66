"""
Transport exceptions.

Raised by transport sessions. The orchestrator converts every one of these
into a failed deployment; none of them reach the orchestrator's caller.
"""

from phantomhub.exceptions import PhantomHubError


class TransportError(PhantomHubError):
    """Base class for failures on the link to a device."""
    pass


class DeviceConnectionError(TransportError):
    """
    Raised when a session cannot be opened.

    Examples:
        - Serial capability missing from this runtime
        - Permission denied on the serial port
        - Network address unreachable or connection refused
        - Connect timed out
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TransportTimeoutError(TransportError):
    """Raised when a send or receive exceeds its budget."""
    pass


class TransportIOError(TransportError):
    """Raised when a send or receive fails on an open session."""
    pass


class DeploymentCancelled(TransportError):
    """Raised at a suspension point after cancellation was requested."""
    pass
