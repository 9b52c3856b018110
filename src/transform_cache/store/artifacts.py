"""On-disk artifact store, sharded by the first two characters of the cache key.

The code file is the commit marker for an artifact: ``write`` stores the map first and
the code last, so a code file on disk implies that the map (if one was produced) is
already complete. A map without its code file is leftover from an interrupted write and
reads as a miss.
"""

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from transform_cache.core.cache_key import derive_artifact_paths
from transform_cache.models import Artifact, ArtifactPaths
from transform_cache.settings import IGNORE_CACHE_VAR, env_flag

logger = logging.getLogger(__name__)


def _write_atomic(path: Path, text: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ArtifactStore:
    """Reads and writes artifacts under one cache root.

    The forced-recompute override is consulted on every read: either the
    ``ignore_cache`` attribute or the ``TRANSFORM_IGNORE_CACHE`` variable of ``env``
    (the live process environment by default) turns every read into a miss.
    """

    def __init__(self, cache_dir: Path, ignore_cache: bool = False, env: Mapping[str, str] | None = None) -> None:
        self.cache_dir = cache_dir
        self.ignore_cache = ignore_cache
        self.env = env

    def ignoring_cache(self) -> bool:
        env = os.environ if self.env is None else self.env
        return self.ignore_cache or env_flag(env, IGNORE_CACHE_VAR)

    def locate(self, key: str, file_path: str) -> ArtifactPaths:
        return derive_artifact_paths(self.cache_dir, key, file_path)

    def try_read(self, paths: ArtifactPaths) -> Artifact | None:
        if self.ignoring_cache():
            return None
        try:
            code = paths.code_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Treating unreadable artifact %s as a miss: %s", paths.code_path, exc)
            return None
        return Artifact(key=paths.key, code=code, source_map=self._read_map(paths.map_path))

    def write(self, paths: ArtifactPaths, code: str, source_map: dict[str, Any] | None = None) -> Artifact:
        paths.shard_dir.mkdir(parents=True, exist_ok=True)
        if source_map:
            _write_atomic(paths.map_path, json.dumps(source_map))
        _write_atomic(paths.code_path, code)
        logger.debug("Stored artifact %s", paths.code_path)
        return Artifact(key=paths.key, code=code, source_map=source_map or None)

    @staticmethod
    def _read_map(map_path: Path) -> dict[str, Any] | None:
        try:
            data = json.loads(map_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable source map %s: %s", map_path, exc)
            return None
        return data if isinstance(data, dict) else None
