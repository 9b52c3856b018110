from pathlib import Path
from typing import Protocol

from transform_cache.models import RawPathConfig


class ConfigDiscovery(Protocol):
    def __call__(self, directory: Path) -> RawPathConfig | None: ...
