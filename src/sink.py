"""UDP log sink — ships structured records as JSON datagrams, best effort."""

import json
import logging
import socket
import threading
from datetime import datetime, timezone

from src.severity import Severity

logger = logging.getLogger(__name__)


class UDPLogSink:
    def __init__(self, host: str, port: int, min_severity: Severity = Severity.INFO):
        self._host = host
        self._port = int(port)
        self._min_severity = min_severity
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sent = 0
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def address(self) -> tuple[str, int]:
        return self._host, self._port

    def accepts(self, severity: Severity) -> bool:
        """Lower value means more urgent; anything past the threshold is dropped."""
        return severity <= self._min_severity

    def send(self, record: dict) -> bool:
        """Send one record without waiting for any acknowledgment.

        Returns True if a datagram was handed to the socket. Delivery failures
        are logged and swallowed so the request that produced the record is
        never affected.
        """
        try:
            severity = Severity.parse(record.get("severity", "DEFAULT"))
        except ValueError:
            severity = Severity.DEFAULT
        if not self.accepts(severity):
            with self._lock:
                self._dropped += 1
            logger.debug("Skipped %s record below sink threshold %s", severity.name, self._min_severity.name)
            return False

        entry = dict(record)
        entry.setdefault("timestamp", datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"))
        try:
            data = json.dumps(entry, default=str).encode("utf-8")
            self._sock.sendto(data, (self._host, self._port))
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Failed to ship log record to %s:%d: %s", self._host, self._port, exc)
            return False

        with self._lock:
            self._sent += 1
        logger.debug("Shipped %d bytes to %s:%d", len(data), self._host, self._port)
        return True

    @property
    def stats(self) -> dict:
        with self._lock:
            return {"sent": self._sent, "dropped": self._dropped}

    def close(self):
        self._sock.close()
        logger.info("UDP log sink for %s:%d closed", self._host, self._port)


_sinks: dict[tuple[str, int, Severity], UDPLogSink] = {}
_sinks_lock = threading.Lock()


def get_sink(host: str, port, min_severity: Severity = Severity.INFO) -> UDPLogSink:
    """Return the process-wide sink for an address, creating it on first use."""
    key = (host, int(port), min_severity)
    with _sinks_lock:
        sink = _sinks.get(key)
        if sink is None:
            sink = UDPLogSink(host, int(port), min_severity)
            _sinks[key] = sink
        return sink


def close_sinks():
    with _sinks_lock:
        for sink in _sinks.values():
            sink.close()
        _sinks.clear()
