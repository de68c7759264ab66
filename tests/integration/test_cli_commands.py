"""Integration tests for phantomhub CLI commands.

Deploy runs end to end against a YAML store on disk and a scripted cable
listening on localhost, with production wiring throughout.
"""
import argparse
import socket
import sys
import threading
import pytest
import yaml
from unittest.mock import patch

import phantomhub
from phantomhub.commands import check_transports, deploy, diagnose, recover, status
from phantomhub.models import DeploymentStatus, DeviceStatus
from phantomhub.store.yaml_store import YamlFileRepository
from tests.fakes import seeded_repository


class FakeCable:
    """Localhost TCP server that acknowledges one payload and reports output."""

    def __init__(self, replies=(b"OK\r\n", b"typed 12 keys\r\nOK\r\n")):
        self.replies = replies
        self.received = b""
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.bind(('127.0.0.1', 0))
        self.server.listen(1)
        self.server.settimeout(5)
        self.port = self.server.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        conn, _ = self.server.accept()
        conn.settimeout(5)
        with conn:
            while b"DUCKY_EXECUTE\r\n" not in self.received:
                chunk = conn.recv(1024)
                if not chunk:
                    return
                self.received += chunk
            for reply in self.replies:
                conn.sendall(reply)
            # Hold the connection until the client closes it
            conn.recv(1024)

    def close(self):
        self.thread.join(timeout=5)
        self.server.close()


def write_config(tmp_path, port, result_seconds=5):
    path = tmp_path / 'phantomhub.yaml'
    path.write_text(yaml.safe_dump({
        'timeouts': {'open_seconds': 2, 'ack_seconds': 2, 'result_seconds': result_seconds},
        'transport': {'poll_interval_seconds': 0.02, 'network_port': port},
    }))
    return str(path)


def create_store(tmp_path, ip_address='127.0.0.1'):
    path = tmp_path / 'store.yaml'
    store = seeded_repository(store=YamlFileRepository(str(path)))
    device = store.load_device('dev-1')
    device.ip_address = ip_address
    store.add_device(device)
    return str(path)


def parse(module, argv):
    parser = argparse.ArgumentParser()
    module.setup_parser(parser)
    return parser.parse_args(argv)


def unused_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestDeployCommand:
    """Integration tests for deploy command."""

    def test_parser_defaults(self):
        args = parse(deploy, ['dep-1'])

        assert args.deployment_id == 'dep-1'
        assert args.open_timeout is None
        assert args.result_timeout is None
        assert args.store is None
        assert args.verbose is False

    def test_parser_accepts_all_arguments(self):
        args = parse(deploy, [
            'dep-1', '--store', 's.yaml', '--config', 'c.yaml',
            '--open-timeout', '1', '--ack-timeout', '2', '--result-timeout', '3', '-v',
        ])

        assert args.ack_timeout == 2.0
        assert args.result_timeout == 3.0
        assert args.config == 'c.yaml'
        assert args.verbose is True

    def test_deploy_completes_against_cable(self, tmp_path, capsys):
        cable = FakeCable()
        store_path = create_store(tmp_path)
        args = parse(deploy, ['dep-1', '--store', store_path, '--config', write_config(tmp_path, cable.port)])

        exit_code = deploy.execute(args)
        cable.close()

        assert exit_code == 0
        assert cable.received == b"DUCKY_WRITE\r\nSTRING hello\nENTER\nEND\r\nDUCKY_EXECUTE\r\n"
        store = YamlFileRepository(store_path)
        deployment = store.load_deployment('dep-1')
        assert deployment.status == DeploymentStatus.COMPLETED
        assert deployment.result == "typed 12 keys"
        assert store.load_device('dev-1').status == DeviceStatus.ONLINE
        assert "Deployment dep-1: COMPLETED" in capsys.readouterr().out

    def test_deploy_fails_when_cable_unreachable(self, tmp_path):
        store_path = create_store(tmp_path)
        args = parse(deploy, ['dep-1', '--store', store_path, '--config', write_config(tmp_path, unused_port())])

        exit_code = deploy.execute(args)

        assert exit_code == 1
        store = YamlFileRepository(store_path)
        deployment = store.load_deployment('dep-1')
        assert deployment.status == DeploymentStatus.FAILED
        assert "Could not reach" in deployment.result
        assert store.load_device('dev-1').status == DeviceStatus.OFFLINE

    def test_result_timeout_flag(self, tmp_path):
        cable = FakeCable(replies=(b"OK\r\n",))
        store_path = create_store(tmp_path)
        args = parse(deploy, [
            'dep-1', '--store', store_path, '--config', write_config(tmp_path, cable.port),
            '--result-timeout', '0.2',
        ])

        exit_code = deploy.execute(args)
        cable.close()

        assert exit_code == 1
        result = YamlFileRepository(store_path).load_deployment('dep-1').result
        assert "Timed out after 0.2s" in result

    def test_unknown_deployment_exit_code(self, tmp_path):
        args = parse(deploy, ['missing', '--store', create_store(tmp_path), '--config', write_config(tmp_path, 80)])

        assert deploy.execute(args) == 2

    def test_busy_device_exit_code(self, tmp_path):
        store_path = create_store(tmp_path)
        YamlFileRepository(store_path).save_device_status('dev-1', DeviceStatus.BUSY, None)
        args = parse(deploy, ['dep-1', '--store', store_path, '--config', write_config(tmp_path, 80)])

        assert deploy.execute(args) == 2
        assert YamlFileRepository(store_path).load_deployment('dep-1').status == DeploymentStatus.PENDING


class TestDiagnoseCommand:
    """Integration tests for diagnose command."""

    def test_type_required(self):
        parser = argparse.ArgumentParser()
        diagnose.setup_parser(parser)

        with pytest.raises(SystemExit):
            parser.parse_args([])

    def test_invalid_address_fails(self, capsys):
        args = parse(diagnose, ['--type', 'network', '--address', '999.1.1.1'])

        assert diagnose.execute(args) == 1
        assert "✗ IP Address Verification" in capsys.readouterr().out

    def test_valid_address_passes(self):
        args = parse(diagnose, ['--type', 'network', '--address', '192.168.4.1'])

        assert diagnose.execute(args) == 0

    def test_interactive(self, capsys):
        args = parse(diagnose, ['--type', 'network', '--address', '192.168.4.1', '--interactive'])

        with patch('builtins.input', side_effect=['y', 'n', 'y', 'y']):
            exit_code = diagnose.execute(args)

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "Step 3 of 5: Firewall Settings" in out
        assert "Summary: 4 passed, 1 failed, 0 not checked" in out


class TestStoreCommands:
    """Integration tests for status and recover commands."""

    def test_status_lists_records(self, tmp_path, capsys):
        args = parse(status, ['--store', create_store(tmp_path)])

        assert status.execute(args) == 0
        out = capsys.readouterr().out
        assert "Desk cable" in out
        assert "dep-1" in out
        assert "pending" in out

    def test_recover_fails_interrupted(self, tmp_path, capsys):
        store_path = create_store(tmp_path)
        store = YamlFileRepository(store_path)
        store.save_deployment_transition('dep-1', DeploymentStatus.EXECUTING, None)
        store.save_device_status('dev-1', DeviceStatus.BUSY, None)
        args = parse(recover, ['--store', store_path])

        assert recover.execute(args) == 0

        store = YamlFileRepository(store_path)
        assert store.load_deployment('dep-1').status == DeploymentStatus.FAILED
        assert store.load_device('dev-1').status == DeviceStatus.ONLINE
        assert "dep-1" in capsys.readouterr().out


class TestCheckTransportsCommand:
    """Integration tests for check-transports command."""

    def test_reports_each_transport(self, capsys):
        with patch('phantomhub.commands.check_transports.SystemCapabilityProbe') as probe_cls:
            probe_cls.return_value.serial_available.return_value = False
            probe_cls.return_value.network_available.return_value = True

            exit_code = check_transports.execute(argparse.Namespace())

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "✗ usb (serial) (install pyserial)" in out
        assert "✓ network (tcp)" in out


class TestMain:
    """Test the phantomhub entry point."""

    def test_no_command_prints_help(self):
        with patch.object(sys, 'argv', ['phantomhub']):
            with pytest.raises(SystemExit) as exc_info:
                phantomhub.main()

        assert exc_info.value.code == 1

    def test_dispatches_and_exits_with_command_code(self, tmp_path):
        with patch.object(sys, 'argv', ['phantomhub', 'status', '--store', create_store(tmp_path)]):
            with pytest.raises(SystemExit) as exc_info:
                phantomhub.main()

        assert exc_info.value.code == 0

    def test_keyboard_interrupt_exit_code(self):
        with patch.object(sys, 'argv', ['phantomhub', 'check-transports']):
            with patch('phantomhub.commands.check_transports.execute', side_effect=KeyboardInterrupt):
                with pytest.raises(SystemExit) as exc_info:
                    phantomhub.main()

        assert exc_info.value.code == 130

    def test_unexpected_error_exit_code(self, capsys):
        with patch.object(sys, 'argv', ['phantomhub', 'check-transports']):
            with patch('phantomhub.commands.check_transports.execute', side_effect=RuntimeError("boom")):
                with pytest.raises(SystemExit) as exc_info:
                    phantomhub.main()

        assert exc_info.value.code == 1
        assert "Error: boom" in capsys.readouterr().err
