"""
YAML-file backed repository.

The whole store is one YAML document rewritten atomically (temp file +
os.replace) after every mutation:

    devices:
      - {id: cable-1, name: Desk cable, connection_type: network, ip_address: 192.168.4.1, status: online}
    payloads:
      - {id: p1, name: Hello, script: "STRING hello", version: "1"}
    deployments:
      - {id: d1, payload_id: p1, device_id: cable-1, status: pending}
"""

import os
import tempfile
import yaml
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from phantomhub.models import (
    ConnectionType,
    Deployment,
    DeploymentStatus,
    Device,
    DeviceStatus,
    Payload,
)
from phantomhub.store.exceptions import StoreError
from phantomhub.store.memory import InMemoryRepository


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def device_from_dict(raw: Dict[str, Any]) -> Device:
    return Device(
        id=str(raw['id']),
        name=str(raw.get('name', raw['id'])),
        connection_type=ConnectionType(raw['connection_type']),
        status=DeviceStatus(raw.get('status', DeviceStatus.OFFLINE.value)),
        ip_address=raw.get('ip_address'),
        serial_port=raw.get('serial_port'),
        last_seen=_parse_time(raw.get('last_seen')),
    )


def device_to_dict(device: Device) -> Dict[str, Any]:
    return {
        'id': device.id,
        'name': device.name,
        'connection_type': device.connection_type.value,
        'status': device.status.value,
        'ip_address': device.ip_address,
        'serial_port': device.serial_port,
        'last_seen': _format_time(device.last_seen),
    }


def payload_from_dict(raw: Dict[str, Any]) -> Payload:
    return Payload(
        id=str(raw['id']),
        name=str(raw.get('name', raw['id'])),
        script=str(raw.get('script', '')),
        version=str(raw.get('version', '1')),
    )


def payload_to_dict(payload: Payload) -> Dict[str, Any]:
    return {
        'id': payload.id,
        'name': payload.name,
        'script': payload.script,
        'version': payload.version,
    }


def deployment_from_dict(raw: Dict[str, Any]) -> Deployment:
    return Deployment(
        id=str(raw['id']),
        payload_id=str(raw['payload_id']),
        device_id=str(raw['device_id']),
        status=DeploymentStatus(raw.get('status', DeploymentStatus.PENDING.value)),
        result=raw.get('result'),
        created_at=_parse_time(raw.get('created_at')),
        updated_at=_parse_time(raw.get('updated_at')),
    )


def deployment_to_dict(deployment: Deployment) -> Dict[str, Any]:
    return {
        'id': deployment.id,
        'payload_id': deployment.payload_id,
        'device_id': deployment.device_id,
        'status': deployment.status.value,
        'result': deployment.result,
        'created_at': _format_time(deployment.created_at),
        'updated_at': _format_time(deployment.updated_at),
    }


class YamlFileRepository(InMemoryRepository):
    """InMemoryRepository persisted to a single YAML file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._loading = True
        super().__init__()
        self._load()
        self._loading = False

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = yaml.safe_load(self.path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Could not read store {self.path}: {e}")

        try:
            for item in raw.get('devices') or []:
                device = device_from_dict(item)
                self.devices[device.id] = device
            for item in raw.get('payloads') or []:
                payload = payload_from_dict(item)
                self.payloads[payload.id] = payload
            for item in raw.get('deployments') or []:
                deployment = deployment_from_dict(item)
                self.deployments[deployment.id] = deployment
        except (KeyError, ValueError, TypeError) as e:
            raise StoreError(f"Malformed record in store {self.path}: {e}")

    def _changed(self) -> None:
        if self._loading:
            return
        document = {
            'devices': [device_to_dict(d) for d in self.devices.values()],
            'payloads': [payload_to_dict(p) for p in self.payloads.values()],
            'deployments': [deployment_to_dict(d) for d in self.deployments.values()],
        }
        directory = self.path.parent
        temp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode='w',
                suffix='.yaml',
                prefix='.phantomhub_store_',
                dir=directory,
                delete=False
            ) as f:
                temp_path = f.name
                yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise StoreError(f"Could not write store {self.path}: {e}")
