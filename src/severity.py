"""Severity levels derived from response status codes."""

import logging
from enum import IntEnum


class Severity(IntEnum):
    """Log severity, ordered from most (0) to least (8) urgent."""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7
    DEFAULT = 8

    @classmethod
    def parse(cls, name: str) -> "Severity":
        """Look up a severity by name, case-insensitively."""
        if not isinstance(name, str):
            raise ValueError(f"Unknown severity: {name!r}")
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity: {name!r}") from None

    @property
    def python_level(self) -> int:
        return _PYTHON_LEVELS[self]


# Inclusive lower bounds, checked from the highest band down.
SEVERITY_BANDS = (
    (800, Severity.EMERGENCY),
    (700, Severity.ALERT),
    (600, Severity.CRITICAL),
    (500, Severity.ERROR),
    (400, Severity.WARNING),
    (300, Severity.NOTICE),
    (200, Severity.INFO),
    (100, Severity.DEBUG),
)

_PYTHON_LEVELS = {
    Severity.EMERGENCY: logging.CRITICAL,
    Severity.ALERT: logging.CRITICAL,
    Severity.CRITICAL: logging.CRITICAL,
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.NOTICE: logging.INFO,
    Severity.INFO: logging.INFO,
    Severity.DEBUG: logging.DEBUG,
    Severity.DEFAULT: logging.DEBUG,
}


def classify(status_code) -> Severity:
    """Map a status code to its severity band. Anything unusable is DEFAULT."""
    if isinstance(status_code, bool) or not isinstance(status_code, int):
        return Severity.DEFAULT
    for lower_bound, severity in SEVERITY_BANDS:
        if status_code >= lower_bound:
            return severity
    return Severity.DEFAULT
