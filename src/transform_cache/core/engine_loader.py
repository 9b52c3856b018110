import functools
import importlib

from transform_cache.core.ports.engine import TransformEngine
from transform_cache.errors import EngineLoadError


def load_engine(spec: str) -> TransformEngine:
    """Load an engine from a ``package.module:attribute`` import string.

    A class is instantiated without arguments; any other object is used as is and must
    have a ``transform`` method.
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise EngineLoadError(f"Engine must look like 'module:attribute', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"Cannot import engine module {module_name!r}: {exc}") from exc
    try:
        engine = functools.reduce(getattr, attr_path.split("."), module)
    except AttributeError as exc:
        raise EngineLoadError(f"Module {module_name!r} has no attribute {attr_path!r}") from exc

    if isinstance(engine, type):
        engine = engine()
    if not callable(getattr(engine, "transform", None)):
        raise EngineLoadError(f"{spec!r} does not provide a transform() method")
    return engine
