"""Request/response views consumed by the record builder."""

import os
import socket
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional


@dataclass
class RequestInfo:
    method: str = "GET"
    http_version: str = "1.1"
    scheme: str = "http"
    headers: dict = field(default_factory=dict)
    path: str = "/"
    query_string: Optional[str] = None
    query_params: dict = field(default_factory=dict)
    original_url: str = "/"
    url: Optional[str] = None
    client_ip: Optional[str] = None
    remote_address: Optional[str] = None
    body: Any = None
    bytes_read: Optional[int] = None
    logger_data: Any = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        return _lookup(self.headers, name)


@dataclass
class ResponseInfo:
    status_code: Optional[int] = None
    status_text: Optional[str] = None
    headers: dict = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        return _lookup(self.headers, name)


def _lookup(headers, name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


@dataclass(frozen=True)
class ServiceIdentity:
    service_name: str
    hostname: str


@lru_cache(maxsize=None)
def detect_identity() -> ServiceIdentity:
    """Service name from the working directory, hostname from the machine. Computed once."""
    return ServiceIdentity(
        service_name=os.path.basename(os.path.normpath(os.getcwd())),
        hostname=socket.gethostname(),
    )
