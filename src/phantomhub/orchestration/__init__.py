"""
Deployment orchestration.

Public API:
    - DeploymentOrchestrator: deploy / submit / cancel / run_diagnostics / recover_interrupted
    - DeploymentStateMachine, DeploymentEvent, TRANSITIONS: lifecycle
    - DeviceLeaseRegistry: per-device exclusive ownership
    - ConflictError, InvalidTransitionError: Exceptions
"""

from .exceptions import ConflictError, InvalidTransitionError
from .leases import DeviceLeaseRegistry
from .state_machine import TRANSITIONS, DeploymentEvent, DeploymentStateMachine, next_status
from .orchestrator import DeploymentOrchestrator

__all__ = [
    "DeploymentOrchestrator",
    "DeploymentStateMachine",
    "DeploymentEvent",
    "TRANSITIONS",
    "next_status",
    "DeviceLeaseRegistry",
    "ConflictError",
    "InvalidTransitionError",
]
