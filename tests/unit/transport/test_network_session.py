"""Unit tests for NetworkSession against a local listening socket."""
import socket
import pytest

from phantomhub.core.implementations import SystemTimeProvider
from phantomhub.models import ConnectionType, Device
from phantomhub.transport.exceptions import (
    DeviceConnectionError,
    TransportIOError,
    TransportTimeoutError,
)
from phantomhub.transport.network_session import NetworkSession
from tests.fakes import FakeProbe


@pytest.fixture
def listener():
    """Listening TCP socket on an ephemeral localhost port."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(('127.0.0.1', 0))
    server.listen(1)
    server.settimeout(5)
    yield server
    server.close()


def create_session(port, ip_address='127.0.0.1', probe=None, open_timeout=2.0):
    device = Device(id='dev-1', name='Desk cable', connection_type=ConnectionType.NETWORK, ip_address=ip_address)
    return NetworkSession(
        device,
        SystemTimeProvider(),
        probe or FakeProbe(),
        port=port,
        open_timeout=open_timeout,
        poll_interval=0.02,
    )


def free_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class TestNetworkSessionOpen:
    """Test connection establishment."""

    def test_open_connects(self, listener):
        session = create_session(listener.getsockname()[1])

        session.open()
        conn, _ = listener.accept()

        assert session.endpoint == f"tcp://127.0.0.1:{listener.getsockname()[1]}"
        assert session.device.last_seen is not None
        session.close()
        conn.close()

    def test_refused_connection(self):
        session = create_session(free_port())

        with pytest.raises(DeviceConnectionError) as exc_info:
            session.open()

        assert "Could not reach" in exc_info.value.reason

    def test_missing_ip_address(self):
        session = create_session(80, ip_address=None)

        with pytest.raises(DeviceConnectionError) as exc_info:
            session.open()

        assert "No IP address configured" in str(exc_info.value)

    def test_overlong_hostname(self):
        session = create_session(80, ip_address='a' * 70 + '.local')

        with pytest.raises(DeviceConnectionError) as exc_info:
            session.open()

        assert "Invalid address" in exc_info.value.reason

    def test_port_out_of_range(self):
        session = create_session(70000)

        with pytest.raises(DeviceConnectionError) as exc_info:
            session.open()

        assert "Invalid address" in exc_info.value.reason

    def test_network_capability_missing(self):
        session = create_session(80, probe=FakeProbe(network=False))

        with pytest.raises(DeviceConnectionError):
            session.open()


class TestNetworkSessionIO:
    """Test send/receive on an open connection."""

    def test_round_trip(self, listener):
        session = create_session(listener.getsockname()[1]).open()
        conn, _ = listener.accept()

        session.send(b"DUCKY_EXECUTE\r\n")
        assert conn.recv(1024) == b"DUCKY_EXECUTE\r\n"
        conn.sendall(b"OK\r\n")

        assert session.receive(2.0) == b"OK\r\n"
        session.close()
        conn.close()

    def test_receive_timeout(self, listener):
        session = create_session(listener.getsockname()[1]).open()
        conn, _ = listener.accept()

        with pytest.raises(TransportTimeoutError):
            session.receive(0.1)

        session.close()
        conn.close()

    def test_peer_closed(self, listener):
        session = create_session(listener.getsockname()[1]).open()
        conn, _ = listener.accept()
        conn.close()

        with pytest.raises(TransportIOError) as exc_info:
            session.receive(2.0)

        assert "Connection closed" in str(exc_info.value)
        session.close()
