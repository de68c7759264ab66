"""Deployment lifecycle state machine.

    pending ──opened──> connected ──acknowledged──> executing ──succeeded──> completed
       │                    │                           │
       └──open failed──> failed <──send failed──────────┴──execution failed

cancelled moves any non-terminal status to failed; interrupted (crash
recovery) moves connected/executing to failed. completed and failed are
absorbing.

A transition is committed to memory only after the persist callback has
returned, so the in-memory status never runs ahead of the store.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from phantomhub.models import Deployment, DeploymentStatus
from phantomhub.orchestration.exceptions import ConflictError, InvalidTransitionError


class DeploymentEvent(str, Enum):
    SESSION_OPENED = "session_opened"
    OPEN_FAILED = "open_failed"
    PAYLOAD_ACKNOWLEDGED = "payload_acknowledged"
    SEND_FAILED = "send_failed"
    EXECUTION_SUCCEEDED = "execution_succeeded"
    EXECUTION_FAILED = "execution_failed"
    CANCELLED = "cancelled"
    INTERRUPTED = "interrupted"


_PENDING = DeploymentStatus.PENDING
_CONNECTED = DeploymentStatus.CONNECTED
_EXECUTING = DeploymentStatus.EXECUTING
_COMPLETED = DeploymentStatus.COMPLETED
_FAILED = DeploymentStatus.FAILED

TRANSITIONS: Dict[Tuple[DeploymentStatus, DeploymentEvent], DeploymentStatus] = {
    (_PENDING, DeploymentEvent.SESSION_OPENED): _CONNECTED,
    (_PENDING, DeploymentEvent.OPEN_FAILED): _FAILED,
    (_PENDING, DeploymentEvent.CANCELLED): _FAILED,
    (_CONNECTED, DeploymentEvent.PAYLOAD_ACKNOWLEDGED): _EXECUTING,
    (_CONNECTED, DeploymentEvent.SEND_FAILED): _FAILED,
    (_CONNECTED, DeploymentEvent.CANCELLED): _FAILED,
    (_CONNECTED, DeploymentEvent.INTERRUPTED): _FAILED,
    (_EXECUTING, DeploymentEvent.EXECUTION_SUCCEEDED): _COMPLETED,
    (_EXECUTING, DeploymentEvent.EXECUTION_FAILED): _FAILED,
    (_EXECUTING, DeploymentEvent.CANCELLED): _FAILED,
    (_EXECUTING, DeploymentEvent.INTERRUPTED): _FAILED,
}


def next_status(current: DeploymentStatus, event: DeploymentEvent) -> DeploymentStatus:
    """Target status for event, or InvalidTransitionError."""
    if current.is_terminal:
        raise InvalidTransitionError(f"Deployment is {current.value}; no further transitions are allowed")
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(f"Event {event.value} is not allowed from {current.value}")


@dataclass(frozen=True)
class Transition:
    source: DeploymentStatus
    target: DeploymentStatus
    event: DeploymentEvent
    result: Optional[str]


PersistFn = Callable[[str, DeploymentStatus, Optional[str]], Deployment]


class DeploymentStateMachine:
    """Authoritative lifecycle of one deployment record.

    Args:
        deployment: the record as last persisted
        persist: writes (id, status, result) and returns the stored record;
            raising leaves the machine unchanged
        owns_device: guard for pending -> connected; True when this
            deployment holds its device exclusively
    """

    def __init__(
        self,
        deployment: Deployment,
        persist: PersistFn,
        owns_device: Callable[[], bool] = lambda: True,
    ):
        self.deployment = deployment
        self.persist = persist
        self.owns_device = owns_device
        self.history: List[Transition] = []

    @property
    def status(self) -> DeploymentStatus:
        return self.deployment.status

    @property
    def reached_connected(self) -> bool:
        return any(t.target == _CONNECTED for t in self.history)

    def advance(self, event: DeploymentEvent, result: Optional[str] = None) -> Deployment:
        """Validate, persist, then commit one transition.

        Raises:
            InvalidTransitionError: event not allowed, or result rule broken
            ConflictError: guard for pending -> connected failed
            StoreError: persisting failed (machine unchanged)
        """
        source = self.status
        target = next_status(source, event)

        if target == _CONNECTED and not self.owns_device():
            raise ConflictError(f"Deployment {self.deployment.id} does not own its device")

        if target.is_terminal:
            if not result or not result.strip():
                raise InvalidTransitionError(f"A {target.value} deployment needs a non-empty result")
        elif result is not None:
            raise InvalidTransitionError(f"Result must stay empty while {target.value}")

        stored = self.persist(self.deployment.id, target, result)
        self.deployment = stored
        self.history.append(Transition(source, target, event, result))
        return stored
