"""Unit tests for YamlFileRepository using temporary files."""
import pytest
import yaml
from unittest.mock import patch

from phantomhub.models import DeploymentStatus, DeviceStatus
from phantomhub.store.exceptions import StoreError
from phantomhub.store.yaml_store import YamlFileRepository
from tests.fakes import EPOCH, seeded_repository


class TestYamlFileRepository:
    """Test persistence round trips through the YAML document."""

    def test_missing_file_is_empty_store(self, tmp_path):
        store = YamlFileRepository(str(tmp_path / 'store.yaml'))

        assert store.list_devices() == []
        assert not (tmp_path / 'store.yaml').exists()

    def test_mutations_written_and_reloaded(self, tmp_path):
        path = tmp_path / 'nested' / 'store.yaml'
        store = seeded_repository(store=YamlFileRepository(str(path)))
        store.save_deployment_transition('dep-1', DeploymentStatus.FAILED, 'Connection refused', EPOCH)
        store.save_device_status('dev-1', DeviceStatus.ONLINE, EPOCH)

        reloaded = YamlFileRepository(str(path))

        deployment = reloaded.load_deployment('dep-1')
        assert deployment.status == DeploymentStatus.FAILED
        assert deployment.result == 'Connection refused'
        assert deployment.updated_at == EPOCH
        device = reloaded.load_device('dev-1')
        assert device.status == DeviceStatus.ONLINE
        assert device.ip_address == '192.168.4.1'
        assert reloaded.load_payload('pay-1').script == 'STRING hello\nENTER'

    def test_document_layout(self, tmp_path):
        path = tmp_path / 'store.yaml'
        seeded_repository(store=YamlFileRepository(str(path)))

        document = yaml.safe_load(path.read_text())

        assert set(document) == {'devices', 'payloads', 'deployments'}
        assert document['deployments'][0]['status'] == 'pending'
        assert document['devices'][0]['connection_type'] == 'network'

    def test_hand_written_store(self, tmp_path):
        path = tmp_path / 'store.yaml'
        path.write_text(
            "devices:\n"
            "  - {id: usb-1, connection_type: usb, serial_port: /dev/ttyACM0}\n"
            "payloads:\n"
            "  - {id: p1, name: Hello, script: 'STRING hi'}\n"
            "deployments:\n"
            "  - {id: d1, payload_id: p1, device_id: usb-1}\n"
        )

        store = YamlFileRepository(str(path))

        device = store.load_device('usb-1')
        assert device.name == 'usb-1'
        assert device.status == DeviceStatus.OFFLINE
        assert store.load_deployment('d1').status == DeploymentStatus.PENDING

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'store.yaml'
        path.write_text("devices: [unclosed\n")

        with pytest.raises(StoreError):
            YamlFileRepository(str(path))

    def test_malformed_record(self, tmp_path):
        path = tmp_path / 'store.yaml'
        path.write_text("devices:\n  - {id: x, connection_type: bluetooth}\n")

        with pytest.raises(StoreError) as exc_info:
            YamlFileRepository(str(path))

        assert "Malformed record" in str(exc_info.value)

    def test_failed_write_rolls_back(self, tmp_path):
        """A failed write raises StoreError and leaves memory at the last saved state."""
        store = seeded_repository(store=YamlFileRepository(str(tmp_path / 'store.yaml')))

        with patch('phantomhub.store.yaml_store.os.replace', side_effect=OSError("read-only file system")):
            with pytest.raises(StoreError):
                store.save_deployment_transition('dep-1', DeploymentStatus.CONNECTED, None)

        assert store.load_deployment('dep-1').status == DeploymentStatus.PENDING
        assert YamlFileRepository(str(tmp_path / 'store.yaml')).load_deployment('dep-1').status == DeploymentStatus.PENDING
        assert list(tmp_path.glob('.phantomhub_store_*')) == []
