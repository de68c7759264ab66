"""
Persistence exceptions.
"""

from phantomhub.exceptions import PhantomHubError


class NotFoundError(PhantomHubError):
    """Raised when a device, payload or deployment does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class StoreError(PhantomHubError):
    """
    Raised when persistence is unavailable or rejects a write.

    Fatal to the deploy() call that hits it; the deployment keeps its last
    successfully persisted state.
    """
    pass
