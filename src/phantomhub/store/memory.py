"""
Thread-safe in-memory repository.

Used directly by tests and embedders, and as the working set of
YamlFileRepository.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from phantomhub.models import Deployment, DeploymentStatus, Device, DeviceStatus, Payload
from phantomhub.store.exceptions import NotFoundError, StoreError


class InMemoryRepository:
    """Dict-backed repository guarded by a single re-entrant lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self.devices: Dict[str, Device] = {}
        self.payloads: Dict[str, Payload] = {}
        self.deployments: Dict[str, Deployment] = {}

    # Registration

    def add_device(self, device: Device) -> Device:
        with self._lock:
            self.devices[device.id] = replace(device)
            self._changed()
            return replace(device)

    def add_payload(self, payload: Payload) -> Payload:
        with self._lock:
            if payload.id in self.payloads and self._is_referenced(payload.id):
                raise StoreError(
                    f"Payload {payload.id} is referenced by a deployment; "
                    f"register a new version under a new id instead"
                )
            self.payloads[payload.id] = payload
            self._changed()
            return payload

    def add_deployment(self, deployment: Deployment) -> Deployment:
        with self._lock:
            self._require(self.devices, 'Device', deployment.device_id)
            self._require(self.payloads, 'Payload', deployment.payload_id)
            self.deployments[deployment.id] = replace(deployment)
            self._changed()
            return replace(deployment)

    def delete_device(self, device_id: str) -> None:
        with self._lock:
            self._require(self.devices, 'Device', device_id)
            del self.devices[device_id]
            self._changed()

    # DeploymentRepository

    def load_device(self, device_id: str) -> Device:
        with self._lock:
            return replace(self._require(self.devices, 'Device', device_id))

    def save_device_status(self, device_id: str, status: DeviceStatus,
                           last_seen: Optional[datetime]) -> None:
        with self._lock:
            device = self._require(self.devices, 'Device', device_id)
            previous = replace(device)
            device.status = status
            if last_seen is not None:
                device.last_seen = last_seen
            try:
                self._changed()
            except StoreError:
                self.devices[device_id] = previous
                raise

    def compare_and_set_device_status(self, device_id: str, expected: Iterable[DeviceStatus],
                                      new: DeviceStatus) -> bool:
        with self._lock:
            device = self._require(self.devices, 'Device', device_id)
            previous_status = device.status
            if previous_status not in set(expected):
                return False
            device.status = new
            try:
                self._changed()
            except StoreError:
                self.devices[device_id] = replace(device, status=previous_status)
                raise
            return True

    def load_payload(self, payload_id: str) -> Payload:
        with self._lock:
            return self._require(self.payloads, 'Payload', payload_id)

    def load_deployment(self, deployment_id: str) -> Deployment:
        with self._lock:
            return replace(self._require(self.deployments, 'Deployment', deployment_id))

    def save_deployment_transition(self, deployment_id: str, status: DeploymentStatus,
                                   result: Optional[str], updated_at: Optional[datetime] = None) -> Deployment:
        with self._lock:
            current = self._require(self.deployments, 'Deployment', deployment_id)
            self._require(self.devices, 'Device', current.device_id)
            if current.status.is_terminal:
                raise StoreError(
                    f"Deployment {deployment_id} is {current.status.value} and cannot be modified"
                )
            updated = current.with_status(status, result, updated_at)
            self.deployments[deployment_id] = updated
            try:
                self._changed()
            except StoreError:
                self.deployments[deployment_id] = current
                raise
            return replace(updated)

    def list_deployments(self, device_id: Optional[str] = None,
                         statuses: Optional[Iterable[DeploymentStatus]] = None) -> List[Deployment]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            return [
                replace(d) for d in self.deployments.values()
                if (device_id is None or d.device_id == device_id)
                and (wanted is None or d.status in wanted)
            ]

    def list_devices(self) -> List[Device]:
        with self._lock:
            return [replace(d) for d in self.devices.values()]

    # Helpers

    def _changed(self) -> None:
        """Hook called after every mutation, under the lock."""
        pass

    def _is_referenced(self, payload_id: str) -> bool:
        return any(d.payload_id == payload_id for d in self.deployments.values())

    @staticmethod
    def _require(table: dict, kind: str, record_id: str):
        try:
            return table[record_id]
        except KeyError:
            raise NotFoundError(kind, record_id)
