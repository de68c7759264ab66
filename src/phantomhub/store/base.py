"""
DeploymentRepository Protocol - persistence collaborator of the orchestrator.

Every method raises NotFoundError for missing records and StoreError when
the backing store is unavailable. Returned records are copies; mutate
state only through the save/compare-and-set methods.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from phantomhub.models import Deployment, DeploymentStatus, Device, DeviceStatus, Payload


@runtime_checkable
class DeploymentRepository(Protocol):

    def load_device(self, device_id: str) -> Device:
        ...

    def save_device_status(self, device_id: str, status: DeviceStatus,
                           last_seen: Optional[datetime]) -> None:
        ...

    def compare_and_set_device_status(self, device_id: str, expected: Iterable[DeviceStatus],
                                      new: DeviceStatus) -> bool:
        """Atomically set status to new if it is currently one of expected."""
        ...

    def load_payload(self, payload_id: str) -> Payload:
        ...

    def load_deployment(self, deployment_id: str) -> Deployment:
        ...

    def save_deployment_transition(self, deployment_id: str, status: DeploymentStatus,
                                   result: Optional[str], updated_at: Optional[datetime] = None) -> Deployment:
        ...

    def list_deployments(self, device_id: Optional[str] = None,
                         statuses: Optional[Iterable[DeploymentStatus]] = None) -> List[Deployment]:
        ...

    def list_devices(self) -> List[Device]:
        ...
