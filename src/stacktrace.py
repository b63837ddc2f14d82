"""Stack-trace normalizer — turns raw stack text into source-location frames.

Understands V8-style frames (``at fn (file:line:col)`` / ``at file:line:col``)
as well as Python traceback frames (``File "file", line N, in fn``).
"""

import os
import re
import traceback
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field

DEFAULT_PROJECT_ROOT = os.path.normpath(
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..")
)

_DEPENDENCY_DIR_RE = re.compile(r"[\\/](?:node_modules|site-packages|dist-packages)[\\/]")
_FRAME_MARKER_RE = re.compile(r"^\s*(?:at\s|File\s+\")")
_ANONYMOUS_RE = re.compile(r"<anonymous>|<frozen\s|<string>|\(native\)")
_INTERNAL_TIMERS_RE = re.compile(r"internal[\\/]timers")

_NAMED_FRAME_RE = re.compile(r"^\s*at\s+(?P<function>.*)\s+\((?P<file>.*):(?P<line>\d+):(?P<column>\d+)\)")
_BARE_FRAME_RE = re.compile(r"^\s*at\s+(?P<file>.*):(?P<line>\d+):(?P<column>\d+)")
_PYTHON_FRAME_RE = re.compile(r'^\s*File\s+"(?P<file>[^"]+)",\s+line\s+(?P<line>\d+)(?:,\s+in\s+(?P<function>.+))?')


@dataclass(frozen=True)
class StackFrame:
    function: str
    file: str
    line: int
    column: int


@dataclass
class SourceLocation:
    sources: list[StackFrame] = field(default_factory=list)
    stack: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def stack_text(error) -> str | None:
    """Return the raw stack text carried by an error, if any.

    Accepts a mapping with a ``stack`` key (the JSON form), any object with a
    ``stack`` attribute, or a raised Python exception.
    """
    if isinstance(error, Mapping):
        stack = error.get("stack")
    elif isinstance(error, BaseException):
        if error.__traceback__ is None:
            return None
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    else:
        stack = getattr(error, "stack", None)
    if not stack:
        return None
    return stack if isinstance(stack, str) else str(stack)


def _is_app_frame(line: str) -> bool:
    if _DEPENDENCY_DIR_RE.search(line):
        return False
    if not _FRAME_MARKER_RE.search(line):
        return False
    if _ANONYMOUS_RE.search(line):
        return False
    return not _INTERNAL_TIMERS_RE.search(line)


def filter_stack_lines(stack: str) -> list[str]:
    """Keep application call-frame lines, first occurrence only, in order."""
    seen = set()
    lines = []
    for line in stack.splitlines():
        if not line.strip() or not _is_app_frame(line):
            continue
        if line in seen:
            continue
        seen.add(line)
        lines.append(line)
    return lines


def _relative_to(path: str, project_root: str) -> str:
    try:
        return os.path.relpath(path, project_root)
    except ValueError:
        # Different drive on Windows.
        return path


def parse_frame(line: str, project_root: str = DEFAULT_PROJECT_ROOT) -> StackFrame | None:
    """Extract a frame from one stack line, or None if no pattern matches."""
    for pattern in (_NAMED_FRAME_RE, _BARE_FRAME_RE):
        m = pattern.search(line)
        if m:
            groups = m.groupdict()
            return StackFrame(
                function=groups.get("function") or "",
                file=_relative_to(m.group("file"), project_root),
                line=int(m.group("line")),
                column=int(m.group("column")),
            )

    m = _PYTHON_FRAME_RE.search(line)
    if m:
        return StackFrame(
            function=(m.group("function") or "").strip(),
            file=_relative_to(m.group("file"), project_root),
            line=int(m.group("line")),
            column=0,
        )
    return None


def normalize(error, project_root: str = DEFAULT_PROJECT_ROOT) -> SourceLocation | None:
    """Build a SourceLocation from an error's stack; None when it has no stack."""
    stack = stack_text(error)
    if stack is None:
        return None

    lines = filter_stack_lines(stack)
    sources = []
    for line in lines:
        frame = parse_frame(line, project_root)
        if frame is not None:
            sources.append(frame)

    return SourceLocation(sources=sources, stack="\n".join(lines))
