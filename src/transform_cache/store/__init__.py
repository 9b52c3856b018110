from transform_cache.store.artifacts import ArtifactStore
from transform_cache.store.registry import SourceMapRegistry, get_default_registry

__all__ = [
    "ArtifactStore",
    "SourceMapRegistry",
    "get_default_registry",
]
