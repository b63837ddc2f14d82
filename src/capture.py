"""Response-capture hook — observes the payload handed to a response's JSON entry point."""

import logging

logger = logging.getLogger(__name__)

CAPTURE_ATTR = "logger_data"


def _payload_of(args: tuple, kwargs: dict):
    """Pick the value being serialized, the same way jsonify does."""
    if len(args) == 1 and not kwargs:
        return args[0]
    if args:
        return list(args)
    return dict(kwargs)


def intercept(request, response, attr: str = "json"):
    """Wrap ``response.<attr>`` so its first call records the payload on the request.

    The wrapper restores the original callable before delegating to it, so it
    fires at most once and the response is produced exactly as before.
    """
    original = getattr(response, attr)

    def capture(*args, **kwargs):
        setattr(request, CAPTURE_ATTR, _payload_of(args, kwargs))
        setattr(response, attr, original)
        logger.debug("Captured %s payload for %r", attr, request)
        return original(*args, **kwargs)

    setattr(response, attr, capture)
    return capture


def captured_payload(request, default=None):
    """Return whatever the hook recorded on the request, or ``default``."""
    return getattr(request, CAPTURE_ATTR, default)
