"""Per-directory path-alias configuration.

A directory's configuration is discovered once, validated, and memoized for the rest of
the process. Anything malformed or ambiguous is treated as "no configuration": aliasing
only helps imports resolve, it is never required for a transform to succeed.
"""

import json
import logging
import os
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from transform_cache.core.ports.discovery import ConfigDiscovery
from transform_cache.core.tsconfig import TsConfigDiscovery
from transform_cache.models import RawPathConfig

logger = logging.getLogger(__name__)

# Keys made only of "*", ".", "/" and "\" would match nearly every import.
_AMBIGUOUS_KEY = re.compile(r"^[*./\\]+$")


@dataclass(frozen=True)
class AliasRule:
    pattern: str
    target: str
    regex: re.Pattern[str]
    resolver: Callable[[re.Match[str]], str]

    def resolve(self, specifier: str) -> str | None:
        match = self.regex.match(specifier)
        if match is None:
            return None
        return self.resolver(match)


@dataclass(frozen=True)
class ConfigFingerprint:
    base_dir: str
    single_path: dict[str, str]
    identity_hash: str
    alias_rules: tuple[AliasRule, ...]

    def resolve(self, specifier: str) -> str | None:
        """Resolve an import specifier through the first matching alias rule."""
        for rule in self.alias_rules:
            resolved = rule.resolve(specifier)
            if resolved is not None:
                return resolved
        return None


def _pattern_regex(key: str) -> re.Pattern[str]:
    head, star, tail = key.partition("*")
    if not star:
        return re.compile("^" + re.escape(key))
    return re.compile("^" + re.escape(head) + ".*" + re.escape(tail))


def _make_resolver(key: str, target: str, base_dir: str) -> Callable[[re.Match[str]], str]:
    def resolve(match: re.Match[str]) -> str:
        if key.endswith("/*"):
            suffix = match.group(0)[len(key) - 1 :]
            relative = target.replace("*", suffix, 1) if "*" in target else target + suffix
        else:
            relative = target
        relative = relative.replace("/", os.sep)
        return os.path.abspath(os.path.join(base_dir, relative))

    return resolve


def validate_path_config(raw: RawPathConfig) -> ConfigFingerprint | None:
    """Turn a discovered configuration into a fingerprint, or reject it wholesale."""
    if raw.config_path is None or not raw.paths or not raw.base_url:
        return None

    paths = raw.paths
    ambiguous = next((key for key in paths if _AMBIGUOUS_KEY.match(key)), None)
    if ambiguous is not None:
        logger.debug("Ignoring %s: ambiguous path pattern %r", raw.config_path, ambiguous)
        return None
    multiple = next((key for key, targets in paths.items() if len(targets) != 1), None)
    if multiple is not None:
        logger.debug("Ignoring %s: pattern %r needs exactly one target", raw.config_path, multiple)
        return None

    single_path = {key: targets[0] for key, targets in paths.items()}
    # baseUrl is relative to the config file, not to the working directory.
    base_dir = os.path.abspath(os.path.join(os.path.dirname(raw.config_path), raw.base_url))
    identity_hash = json.dumps({"absoluteBaseUrl": base_dir, "singlePath": single_path})

    rules = tuple(
        AliasRule(
            pattern=key,
            target=target,
            regex=_pattern_regex(key),
            resolver=_make_resolver(key, target, base_dir),
        )
        for key, target in single_path.items()
    )
    return ConfigFingerprint(
        base_dir=base_dir,
        single_path=single_path,
        identity_hash=identity_hash,
        alias_rules=rules,
    )


class ConfigResolver:
    """Memoizes one fingerprint (or its absence) per directory."""

    def __init__(self, discover: ConfigDiscovery | None = None) -> None:
        self._discover = discover or TsConfigDiscovery()
        self._cache: dict[str, ConfigFingerprint | None] = {}
        self._lock = threading.Lock()

    def resolve_for(self, file_path: str) -> ConfigFingerprint | None:
        directory = os.path.dirname(file_path)
        with self._lock:
            if directory in self._cache:
                return self._cache[directory]

        fingerprint = self._load(directory)
        with self._lock:
            # First writer wins so every caller sees the same fingerprint object.
            return self._cache.setdefault(directory, fingerprint)

    def cached_directories(self) -> list[str]:
        with self._lock:
            return list(self._cache)

    def _load(self, directory: str) -> ConfigFingerprint | None:
        try:
            raw = self._discover(Path(directory))
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("No usable path configuration for %s: %s", directory, exc)
            return None
        if raw is None:
            return None
        return validate_path_config(raw)


_default_resolver = ConfigResolver()


def get_default_resolver() -> ConfigResolver:
    return _default_resolver
