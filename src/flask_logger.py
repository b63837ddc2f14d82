"""Flask extension — captures JSON responses and logs every request/response pair.

Usage::

    app = Flask(__name__)
    RequestLogger(app, load_config())
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, Response, Request, current_app, g, has_request_context, request
from flask.json.provider import JSONProvider
from werkzeug.http import HTTP_STATUS_CODES

from src.builder import RecordBuilder
from src.capture import captured_payload, intercept
from src.config import Config, load_config
from src.models import RequestInfo, ResponseInfo

logger = logging.getLogger(__name__)

EXTENSION_KEY = "request_logger"
_RECEIVED_KEY = "request_log_received"
_RESPONDER_KEY = "request_log_responder"


class _JSONResponder:
    """Per-request JSON entry point; the capture hook is installed on ``json``."""

    def __init__(self, provider: "CapturingJSONProvider"):
        self._provider = provider

    def json(self, *args, **kwargs) -> Response:
        return self._provider.plain_response(*args, **kwargs)


class CapturingJSONProvider:
    """Mixin that routes ``response()`` through the current request's responder.

    ``jsonify`` and dict/list return values from views both end up in
    ``app.json.response``. It is combined with the app's own provider class,
    so settings such as ``sort_keys`` or ``ensure_ascii`` keep applying.
    """

    def response(self, *args, **kwargs) -> Response:
        responder = g.get(_RESPONDER_KEY) if has_request_context() else None
        if responder is None:
            return self.plain_response(*args, **kwargs)
        return responder.json(*args, **kwargs)

    def plain_response(self, *args, **kwargs) -> Response:
        return super().response(*args, **kwargs)


def capturing_provider(provider: JSONProvider) -> JSONProvider:
    """Return a copy of ``provider`` whose class also mixes in CapturingJSONProvider."""
    if isinstance(provider, CapturingJSONProvider):
        return provider
    base = type(provider)
    cls = type(f"Capturing{base.__name__}", (CapturingJSONProvider, base), {})
    wrapped = cls.__new__(cls)
    wrapped.__dict__.update(vars(provider))
    return wrapped


def _request_body(req: Request):
    if req.is_json:
        return req.get_json(silent=True)
    if req.form:
        return req.form.to_dict()
    if req.mimetype.startswith("text/"):
        return req.get_data(as_text=True) or None
    return None


def request_info_from_flask(req: Request) -> RequestInfo:
    query = req.query_string.decode("latin-1")
    origin = req.script_root + req.path
    protocol = req.environ.get("SERVER_PROTOCOL", "HTTP/1.1")
    return RequestInfo(
        method=req.method,
        http_version=protocol.split("/", 1)[-1],
        scheme=req.scheme,
        headers=dict(req.headers),
        path=req.path,
        query_string=query or None,
        query_params=req.args.to_dict(),
        original_url=f"{origin}?{query}" if query else origin,
        url=req.url,
        client_ip=req.remote_addr,
        remote_address=req.environ.get("REMOTE_ADDR"),
        body=_request_body(req),
        bytes_read=req.content_length,
        logger_data=captured_payload(req),
    )


def response_info_from_flask(resp: Response) -> ResponseInfo:
    return ResponseInfo(
        status_code=resp.status_code,
        status_text=HTTP_STATUS_CODES.get(resp.status_code),
        headers=dict(resp.headers),
    )


class RequestLogger:
    def __init__(self, app: Optional[Flask] = None, config: Optional[Config] = None,
                 builder: Optional[RecordBuilder] = None):
        self.config = config or load_config()
        self.builder = builder or RecordBuilder(
            project_root=self.config.project_root,
            sink_severity=self.config.sink_severity,
        )
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        app.json = capturing_provider(app.json)
        app.before_request(self._before_request)
        app.after_request(self._after_request)
        app.extensions[EXTENSION_KEY] = self

    def _before_request(self):
        setattr(g, _RECEIVED_KEY, datetime.now(timezone.utc))
        provider = current_app.json
        if not isinstance(provider, CapturingJSONProvider):
            # app.json was replaced after init_app; nothing routes through a responder.
            return
        responder = _JSONResponder(provider)
        intercept(request._get_current_object(), responder)
        setattr(g, _RESPONDER_KEY, responder)

    def _after_request(self, response: Response) -> Response:
        try:
            received = g.get(_RECEIVED_KEY) or datetime.now(timezone.utc)
            self.builder.build(
                request_info_from_flask(request._get_current_object()),
                response_info_from_flask(response),
                self.config.options(received),
            )
        except Exception:
            logger.exception("Failed to build request log record for %s %s", request.method, request.path)
        return response
