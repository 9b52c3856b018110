import hashlib
import os
import re
from pathlib import Path

from transform_cache.core.config_resolver import ConfigFingerprint
from transform_cache.models import ArtifactPaths

# Bumping this orphans every artifact written by earlier versions.
FORMAT_VERSION = 6

CODE_SUFFIX = ".js"
MAP_SUFFIX = ".map"

_UNSAFE_STEM_CHARS = re.compile(r"[^A-Za-z0-9_]")


def compute_cache_key(
    fingerprint: ConfigFingerprint | None,
    build_mode: str,
    content: str,
    file_path: str,
    version: int = FORMAT_VERSION,
) -> str:
    h = hashlib.sha1()
    parts = (
        fingerprint.identity_hash if fingerprint else "",
        build_mode,
        content,
        file_path,
        str(version),
    )
    for part in parts:
        data = part.encode("utf-8")
        h.update(f"{len(data)}|".encode("ascii"))
        h.update(data)
    return h.hexdigest()


def sanitize_stem(file_path: str) -> str:
    stem, _ = os.path.splitext(os.path.basename(file_path))
    return _UNSAFE_STEM_CHARS.sub("", stem)


def derive_artifact_paths(cache_dir: Path, key: str, file_path: str) -> ArtifactPaths:
    shard_dir = cache_dir / key[:2]
    base = shard_dir / f"{sanitize_stem(file_path)}_{key}"
    return ArtifactPaths(
        key=key,
        shard_dir=shard_dir,
        code_path=base.with_name(base.name + CODE_SUFFIX),
        map_path=base.with_name(base.name + MAP_SUFFIX),
    )
