"""Per-device exclusive leases.

The busy flag is the only state contended by concurrent deploy() calls.
acquire() is a check-and-set under one lock, so two deployments can never
hold the same device; a second caller is refused immediately, never queued.
"""
import threading
from typing import Dict, Optional


class DeviceLeaseRegistry:

    def __init__(self):
        self._lock = threading.Lock()
        self._holders: Dict[str, str] = {}

    def acquire(self, device_id: str, deployment_id: str) -> bool:
        with self._lock:
            holder = self._holders.get(device_id)
            if holder is not None and holder != deployment_id:
                return False
            self._holders[device_id] = deployment_id
            return True

    def release(self, device_id: str, deployment_id: str) -> None:
        with self._lock:
            if self._holders.get(device_id) == deployment_id:
                del self._holders[device_id]

    def holder(self, device_id: str) -> Optional[str]:
        with self._lock:
            return self._holders.get(device_id)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._holders)
