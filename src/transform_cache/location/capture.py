import functools
import traceback
from collections.abc import Callable
from typing import Concatenate, ParamSpec, TypeVar

from transform_cache.location.support import capture_stack_trace, stack_trace_override, wrap_frame
from transform_cache.models import Location

P = ParamSpec("P")
R = TypeVar("R")


def _caller_location(frames: list[traceback.FrameSummary]) -> Location:
    # frames[0] is the wrapper itself, frames[1] whoever called it.
    frame = frames[1] if len(frames) > 1 else frames[0]
    return wrap_frame(frame)


def wrap_function_with_location(func: Callable[Concatenate[Location, P], R]) -> Callable[P, R]:
    """Wrap ``func`` so it receives its caller's original source location first.

    The stack overrides are released before ``func`` runs, so nothing ``func`` does
    (including raising) can observe or leak them.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with stack_trace_override(_caller_location, limit=2):
            location = capture_stack_trace()
        return func(location, *args, **kwargs)

    return wrapper
