"""Discovery of ``tsconfig.json`` path-aliasing settings.

Looks for the nearest ``tsconfig.json`` walking upward from a directory (or uses
``TS_NODE_PROJECT`` when set), follows ``extends`` chains and returns the raw
``baseUrl``/``paths`` pair for the resolver to validate.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import json5

from transform_cache.models import RawPathConfig

CONFIG_FILE_NAME = "tsconfig.json"


class TsConfigError(ValueError):
    """Raised for a tsconfig file that cannot be interpreted."""


def find_tsconfig(directory: Path, env: Mapping[str, str]) -> Path | None:
    project = env.get("TS_NODE_PROJECT")
    if project:
        candidate = Path(os.path.abspath(directory / project))
        if candidate.is_dir():
            candidate = candidate / CONFIG_FILE_NAME
        return candidate

    current = Path(os.path.abspath(directory))
    while True:
        candidate = current / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        if current.parent == current:
            return None
        current = current.parent


def _resolve_extends(config_path: Path, extends: str) -> Path:
    if extends.startswith("."):
        target = config_path.parent / extends
    else:
        target = config_path.parent / "node_modules" / extends
    if target.suffix != ".json":
        target = target.with_name(target.name + ".json")
    return Path(os.path.abspath(target))


def read_tsconfig(config_path: Path, _seen: frozenset[Path] = frozenset()) -> dict[str, Any]:
    """Read a tsconfig file, merging in whatever it ``extends``."""
    if config_path in _seen:
        raise TsConfigError(f"Circular 'extends' chain through {config_path}")

    text = config_path.read_text(encoding="utf-8").lstrip("\ufeff")
    config = json5.loads(text) if text.strip() else {}
    if not isinstance(config, dict):
        raise TsConfigError(f"{config_path} must contain an object at the root")
    options = config.get("compilerOptions") or {}
    if not isinstance(options, dict):
        raise TsConfigError(f"'compilerOptions' in {config_path} must be an object")

    extends = config.get("extends")
    if not isinstance(extends, str) or not extends:
        return config

    base_path = _resolve_extends(config_path, extends)
    base = read_tsconfig(base_path, _seen | {config_path})
    base_options = dict(base.get("compilerOptions") or {})

    # A baseUrl inherited from the base config stays relative to the base config's directory.
    base_url = base_options.get("baseUrl")
    if isinstance(base_url, str):
        rebased = os.path.relpath(base_path.parent, config_path.parent)
        base_options["baseUrl"] = os.path.join(rebased, base_url)

    merged = {**base, **config}
    merged.pop("extends", None)
    merged["compilerOptions"] = {**base_options, **options}
    return merged


def load_tsconfig(directory: Path, env: Mapping[str, str] | None = None) -> RawPathConfig | None:
    env = os.environ if env is None else env
    config_path = find_tsconfig(directory, env)
    if config_path is None:
        return None
    options = read_tsconfig(config_path).get("compilerOptions") or {}
    return RawPathConfig.model_validate(
        {
            "config_path": config_path,
            "base_url": options.get("baseUrl"),
            "paths": options.get("paths"),
        }
    )


class TsConfigDiscovery:
    """``ConfigDiscovery`` backed by tsconfig files on disk."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env

    def __call__(self, directory: Path) -> RawPathConfig | None:
        return load_tsconfig(directory, self._env)
