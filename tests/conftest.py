import socket

import pytest

from src.builder import RecordBuilder
from src.config import LogOptions
from src.models import RequestInfo, ResponseInfo, ServiceIdentity

NOW_MS = 1_700_000_000_000


class FakeSink:
    """Collects records instead of shipping them."""

    def __init__(self):
        self.records = []

    def send(self, record):
        self.records.append(record)
        return True


def make_receiver(port=0):
    """Create a UDP socket to receive records, returns (sock, address)."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", port))
    sock.settimeout(5.0)
    return sock, sock.getsockname()


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def identity():
    return ServiceIdentity(service_name="orders", hostname="node-7")


@pytest.fixture
def builder(identity, sink):
    return RecordBuilder(identity=identity, sink=sink, project_root="/srv/app",
                         clock=lambda: NOW_MS / 1000)


@pytest.fixture
def options():
    return LogOptions(
        log_server_host="127.0.0.1",
        log_server_port="5514",
        log_environment="staging",
        received_time=NOW_MS - 250,
    )


@pytest.fixture
def sample_request():
    return RequestInfo(
        method="GET",
        http_version="1.1",
        headers={"Host": "api.example.com", "User-Agent": "pytest-agent"},
        path="/orders/42",
        query_string="visitor_id=v-1&expand=true",
        query_params={"visitor_id": "v-1", "expand": "true"},
        original_url="/api/orders/42?visitor_id=v-1&expand=true",
        url="http://api.example.com/api/orders/42?visitor_id=v-1&expand=true",
        client_ip="::ffff:127.0.0.1",
        remote_address="127.0.0.1",
        bytes_read=0,
    )


@pytest.fixture
def ok_response():
    return ResponseInfo(status_code=200, status_text="OK", headers={})


@pytest.fixture
def receiver():
    sock, address = make_receiver()
    try:
        yield sock, address
    finally:
        sock.close()
