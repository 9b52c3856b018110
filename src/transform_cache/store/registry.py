import json
import logging
import threading
from pathlib import Path
from typing import Any

from transform_cache.location.source_map import SourceMapConsumer, SourceMapError

logger = logging.getLogger(__name__)

_Stamp = tuple[int, int]


class SourceMapRegistry:
    """Process-wide record of which source map belongs to which original file.

    Entries are overwritten on every transform and never pruned. Map files are only
    read when a location actually needs resolving; decoded maps are kept until the
    file's modification time or size changes.
    """

    def __init__(self) -> None:
        self._maps: dict[str, Path] = {}
        self._consumers: dict[Path, tuple[_Stamp, SourceMapConsumer | None]] = {}
        self._lock = threading.Lock()

    def register(self, source_path: str, map_path: Path) -> None:
        with self._lock:
            self._maps[source_path] = map_path

    def map_path_for(self, source_path: str) -> Path | None:
        with self._lock:
            return self._maps.get(source_path)

    def retrieve_source_map(self, source_path: str) -> dict[str, Any] | None:
        map_path = self.map_path_for(source_path)
        if map_path is None:
            return None
        return _load_map(map_path, source_path)

    def consumer_for(self, source_path: str) -> SourceMapConsumer | None:
        """Decoded map for ``source_path``, or ``None`` when missing or unusable."""
        map_path = self.map_path_for(source_path)
        if map_path is None:
            return None
        try:
            stat = map_path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot stat source map %s for %s: %s", map_path, source_path, exc)
            return None
        stamp = (stat.st_mtime_ns, stat.st_size)

        with self._lock:
            cached = self._consumers.get(map_path)
        if cached is not None and cached[0] == stamp:
            return cached[1]

        consumer = None
        raw = _load_map(map_path, source_path)
        if raw is not None:
            try:
                consumer = SourceMapConsumer(raw)
            except SourceMapError as exc:
                logger.debug("Unusable source map %s for %s: %s", map_path, source_path, exc)
        with self._lock:
            self._consumers[map_path] = (stamp, consumer)
        return consumer

    def __contains__(self, source_path: object) -> bool:
        with self._lock:
            return source_path in self._maps

    def __len__(self) -> int:
        with self._lock:
            return len(self._maps)


def _load_map(map_path: Path, source_path: str) -> dict[str, Any] | None:
    try:
        data = json.loads(map_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.warning("Cannot read source map %s for %s: %s", map_path, source_path, exc)
        return None
    return data if isinstance(data, dict) else None


_default_registry = SourceMapRegistry()


def get_default_registry() -> SourceMapRegistry:
    return _default_registry
