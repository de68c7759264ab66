"""
Orchestration exceptions.

ConflictError and NotFoundError (from phantomhub.store) are surfaced to
deploy() callers before any state is mutated.
"""

from phantomhub.exceptions import PhantomHubError


class ConflictError(PhantomHubError):
    """
    Raised when a deployment cannot start.

    Examples:
        - Device already owned by another in-flight deployment
        - Deployment already started, completed or failed
    """
    pass


class InvalidTransitionError(PhantomHubError):
    """Raised when an event is not permitted from the current status."""
    pass
