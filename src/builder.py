"""Record builder — assembles one structured log record per request/response pair."""

import json
import logging
import time
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Optional

from src.config import LogOptions
from src.models import RequestInfo, ResponseInfo, ServiceIdentity, detect_identity
from src.severity import Severity, classify
from src.sink import get_sink
from src.stacktrace import DEFAULT_PROJECT_ROOT, normalize

logger = logging.getLogger(__name__)

DIRECT_REFERRER = "DIRECT"
CACHE_MISS = "MISS"
MESSAGE_SEPARATOR = " | "


def to_epoch_ms(value) -> Optional[int]:
    """Convert a datetime, epoch-millisecond number or ISO-8601 string to epoch ms."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            return None
    return None


def extract_remote_ip(client_ip: Optional[str], forwarded_for: Optional[str] = None,
                      remote_address: Optional[str] = None) -> Optional[str]:
    """Strip an IPv6 prefix or port from the client IP, else fall back to proxy/peer."""
    if client_ip is not None:
        if ":" in client_ip:
            return client_ip[client_ip.rindex(":") + 1:]
        return client_ip
    return forwarded_for or remote_address


def _field(data, name: str):
    if isinstance(data, Mapping):
        return data.get(name)
    return None


def error_message(error) -> Optional[str]:
    if isinstance(error, Mapping):
        return error.get("message")
    if isinstance(error, BaseException):
        return str(error)
    return getattr(error, "message", None)


def compose_message(response: Optional[ResponseInfo], logger_data) -> str:
    """Join the distinct, non-empty message candidates with `` | ``."""
    candidates = []
    if response is not None:
        candidates.append(response.status_text)
    if logger_data is not None:
        error = _field(logger_data, "error")
        candidates.append(error_message(error) if error is not None else _field(logger_data, "message"))

    messages = []
    for candidate in candidates:
        if candidate is None or candidate == "":
            continue
        text = str(candidate)
        if text not in messages:
            messages.append(text)
    return MESSAGE_SEPARATOR.join(messages)


def response_size(payload) -> Optional[int]:
    """Length of the payload as sent: strings directly, anything else as compact JSON.

    Non-ASCII characters are escaped, as Flask's default JSON provider does,
    so the count matches the body it sends without the trailing newline.
    """
    if payload is None:
        return None
    if isinstance(payload, str):
        return len(payload)
    try:
        return len(json.dumps(payload, separators=(",", ":"), default=str))
    except (TypeError, ValueError):
        return None


def _service_point(origin_uri: str) -> Optional[str]:
    path = origin_uri.split("?", 1)[0]
    segments = path.split("/")
    return segments[1] if len(segments) > 1 else None


class RecordBuilder:
    """Builds a LogRecord dict and hands it to a sink.

    ``sink`` may be any object with ``send(record)``. When omitted, a UDP sink
    for the host/port in the per-call options is used.
    """

    def __init__(self, identity: Optional[ServiceIdentity] = None, sink=None,
                 project_root: str = DEFAULT_PROJECT_ROOT,
                 clock: Callable[[], float] = time.time,
                 sink_severity: Severity = Severity.INFO):
        self._identity = identity or detect_identity()
        self._sink = sink
        self._project_root = project_root
        self._clock = clock
        self._sink_severity = sink_severity

    def build(self, request: Optional[RequestInfo], response: Optional[ResponseInfo],
              options: LogOptions) -> dict:
        severity = classify(response.status_code if response is not None else None)

        start_time = to_epoch_ms(options.received_time)
        end_time = int(self._clock() * 1000)
        process_time = end_time - start_time if start_time is not None else None
        if process_time is not None and process_time < 0:
            logger.warning("Negative processTime %d ms: received time is after build time", process_time)

        record = self._base_record(request, options, severity)
        record.update({
            "receiveTimestamp": _timestamp_value(options.received_time),
            "startTime": start_time,
            "endTime": end_time,
            "processTime": process_time,
        })

        http_request: dict[str, Any] = {}
        if request is not None:
            record["httpRequest"] = http_request
            http_request.update(self._request_fields(request))
            self._attach_payload(record, request)
            visitor_id = request.query_params.get("visitor_id") if request.query_params else None
            if visitor_id:
                record["visitorId"] = visitor_id

        if response is not None:
            record["httpRequest"] = http_request
            http_request["status"] = response.status_code
            http_request["cacheHit"] = response.header("X-Cache") or CACHE_MISS
            http_request["cacheLookup"] = response.header("X-Cache-Lookup") or CACHE_MISS
            http_request["latency"] = response.header("X-Response-Time") or process_time

        logger_data = request.logger_data if request is not None else None
        if logger_data is not None:
            size = response_size(logger_data)
            if size is not None:
                http_request["responseSize"] = size
            error = _field(logger_data, "error")
            if error is not None:
                location = normalize(error, self._project_root)
                if location is not None:
                    record["sourceLocation"] = location.to_dict()

        record["message"] = compose_message(response, logger_data)

        self._emit(record, severity, options)
        return record

    def _base_record(self, request: Optional[RequestInfo], options: LogOptions, severity: Severity) -> dict:
        service = self._identity.service_name
        environment = options.log_environment

        service_uri = origin_uri = query = hostname = None
        if request is not None:
            service_uri = request.path
            origin_uri = request.original_url
            query = request.query_string or None
            hostname = request.header("Host")
        service_point = _service_point(origin_uri) if origin_uri else None

        return {
            "level": severity.name,
            "severity": severity.name,
            "serviceName": f"{service}-service-{environment}",
            "serviceURI": service_uri,
            "originURI": origin_uri,
            "servicePoint": service_point,
            "serviceEndpoint": f"{service_point}{service_uri}" if service_point is not None else service_uri,
            "serviceQuery": query,
            "serviceHostname": hostname,
            "logName": f"{service}/logs/{environment}",
            "resource": {
                "type": "ocp_instance",
                "labels": {
                    "project_id": f"{service}-project",
                    "instance_id": f"{service}-instance",
                    "zone": self._identity.hostname,
                },
            },
        }

    @staticmethod
    def _request_fields(request: RequestInfo) -> dict:
        return {
            "requestMethod": request.method,
            "requestUrl": request.url or f"{request.scheme}://{request.header('Host') or ''}{request.original_url}",
            "protocol": f"HTTP/{request.http_version}",
            "requestSize": request.bytes_read,
            "remoteIp": extract_remote_ip(
                request.client_ip, request.header("X-Forwarded-For"), request.remote_address
            ),
            "userAgent": request.header("User-Agent"),
            "referrer": request.header("Referer") or request.header("Referrer") or DIRECT_REFERRER,
        }

    @staticmethod
    def _attach_payload(record: dict, request: RequestInfo):
        body = request.body
        if isinstance(body, (Mapping, list)):
            record["jsonPayload"] = body
        elif isinstance(body, str) and body:
            record["textPayload"] = body

    def _emit(self, record: dict, severity: Severity, options: LogOptions):
        sink = self._sink
        if sink is None:
            sink = get_sink(options.log_server_host, options.port, self._sink_severity)
        sink.send(record)
        logger.log(severity.python_level, "%s %s -> %s (%s ms)",
                   record.get("httpRequest", {}).get("requestMethod"), record.get("originURI"),
                   record.get("httpRequest", {}).get("status"), record.get("processTime"))
        logger.debug("Request log record: %s", record)


def _timestamp_value(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value
