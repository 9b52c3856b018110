"""Process-wide source map support.

``install_source_map_support`` is called once at startup with the registry the
transformer publishes map locations to. From then on every location this module
reports (captured call sites, mapped tracebacks) goes through the registered maps, and
falls back to the raw generated location when no map is available.

Stack capture mirrors a runtime error-formatting hook: ``capture_stack_trace`` walks at
most ``get_stack_trace_limit()`` frames and hands them to the active stack formatter.
Both settings are context variables, so ``stack_trace_override`` is scoped to the
current thread or task.
"""

import os
import sys
import traceback
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from types import TracebackType
from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

from transform_cache.location.source_map import SourceMapConsumer
from transform_cache.models import Location
from transform_cache.store.registry import SourceMapRegistry

STACK_TRACE_LIMIT = 15

SourceMapLookup = Callable[[str], SourceMapConsumer | None]
StackFormatter = Callable[[list[traceback.FrameSummary]], Any]

_retriever: SourceMapLookup | None = None
_previous_excepthook: Callable[[type[BaseException], BaseException, TracebackType | None], Any] | None = None

_stack_formatter: ContextVar[StackFormatter | None] = ContextVar("stack_formatter", default=None)
_stack_trace_limit: ContextVar[int] = ContextVar("stack_trace_limit", default=STACK_TRACE_LIMIT)


def install_source_map_support(registry: SourceMapRegistry, *, handle_uncaught_exceptions: bool = False) -> None:
    global _retriever, _previous_excepthook  # noqa: PLW0603
    _retriever = registry.consumer_for
    if handle_uncaught_exceptions and _previous_excepthook is None:
        _previous_excepthook = sys.excepthook
        sys.excepthook = _mapped_excepthook


def uninstall_source_map_support() -> None:
    global _retriever, _previous_excepthook  # noqa: PLW0603
    _retriever = None
    if _previous_excepthook is not None:
        sys.excepthook = _previous_excepthook
        _previous_excepthook = None


def is_installed() -> bool:
    return _retriever is not None


def file_url_to_path(file_name: str) -> str:
    if file_name.startswith("file://"):
        return url2pathname(urlparse(file_name).path)
    return file_name


def map_location(file: str | None, line: int, column: int) -> Location:
    """Map a 1-based generated location to its original position, if a map is known."""
    generated = Location(file=file, line=line, column=column)
    retriever = _retriever
    if retriever is None or file is None:
        return generated
    consumer = retriever(file)
    if consumer is None:
        return generated
    position = consumer.original_position_for(line - 1, max(column - 1, 0))
    if position is None:
        return generated
    source = file_url_to_path(position.source)
    if not os.path.isabs(source):
        source = os.path.normpath(os.path.join(os.path.dirname(file), source))
    return Location(file=source, line=position.line + 1, column=position.column + 1)


def wrap_frame(frame: traceback.FrameSummary) -> Location:
    column = frame.colno + 1 if frame.colno is not None else 1
    return map_location(file_url_to_path(frame.filename), frame.lineno or 0, column)


def get_stack_formatter() -> StackFormatter | None:
    return _stack_formatter.get()


def get_stack_trace_limit() -> int:
    return _stack_trace_limit.get()


@contextmanager
def stack_trace_override(formatter: StackFormatter | None, limit: int | None = None) -> Iterator[None]:
    """Install a stack formatter (and optionally a depth limit) until the block exits."""
    formatter_token = _stack_formatter.set(formatter)
    limit_token = _stack_trace_limit.set(_stack_trace_limit.get() if limit is None else limit)
    try:
        yield
    finally:
        _stack_trace_limit.reset(limit_token)
        _stack_formatter.reset(formatter_token)


def _format_frame(frame: traceback.FrameSummary) -> str:
    location = wrap_frame(frame)
    return f'  File "{location.file}", line {location.line}, column {location.column}, in {frame.name}\n'


def format_mapped_stack(frames: list[traceback.FrameSummary]) -> str:
    """Default formatter: innermost-first frames rendered oldest-first, like a traceback."""
    return "".join(_format_frame(frame) for frame in reversed(frames))


def capture_stack_trace(skip: int = 0) -> Any:
    """Capture the caller's stack, innermost frame first, through the active formatter."""
    start = sys._getframe(skip + 1)
    frames = list(reversed(traceback.extract_stack(start, limit=_stack_trace_limit.get())))
    formatter = _stack_formatter.get() or format_mapped_stack
    return formatter(frames)


def format_mapped_traceback(exc: BaseException) -> str:
    lines = ["Traceback (most recent call last):\n"]
    lines.extend(_format_frame(frame) for frame in traceback.extract_tb(exc.__traceback__))
    lines.extend(traceback.format_exception_only(type(exc), exc))
    return "".join(lines)


def _mapped_excepthook(
    exc_type: type[BaseException], exc: BaseException, tb: TracebackType | None
) -> None:
    sys.stderr.write(format_mapped_traceback(exc.with_traceback(tb)))
