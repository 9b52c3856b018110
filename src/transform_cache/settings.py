import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

IGNORE_CACHE_VAR = "TRANSFORM_IGNORE_CACHE"

_FALSE_VALUES = frozenset({"", "0", "false", "no", "off"})


def env_flag(env: Mapping[str, str], name: str) -> bool:
    value = env.get(name)
    if value is None:
        return False
    return value.strip().lower() not in _FALSE_VALUES


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "transform-cache"


@dataclass(frozen=True)
class Settings:
    """Environment-derived switches for the transform pipeline."""

    cache_dir: Path
    ignore_cache: bool = False
    component_testing: bool = False
    esm: bool = False
    engine: str | None = None

    @property
    def build_mode(self) -> str:
        return "esm" if self.esm else "no_esm"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        cache_dir = env.get("TRANSFORM_CACHE_DIR")
        return cls(
            cache_dir=Path(cache_dir) if cache_dir else default_cache_dir(),
            ignore_cache=env_flag(env, IGNORE_CACHE_VAR),
            component_testing=env_flag(env, "TRANSFORM_COMPONENT_TESTING"),
            esm=env_flag(env, "TRANSFORM_ESM"),
            engine=env.get("TRANSFORM_ENGINE") or None,
        )
