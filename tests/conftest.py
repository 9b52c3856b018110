"""Shared fixtures and helpers for tests."""

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from transform_cache.core.config_resolver import ConfigResolver
from transform_cache.core.ports.engine import TransformOptions
from transform_cache.core.transform import Transformer
from transform_cache.core.tsconfig import TsConfigDiscovery
from transform_cache.location.support import uninstall_source_map_support
from transform_cache.models import EngineResult
from transform_cache.settings import Settings
from transform_cache.store.registry import SourceMapRegistry

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Fake transform engine
# ---------------------------------------------------------------------------


class FakeEngine:
    """Prefixes the source with a marker line and maps every line one down."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, TransformOptions]] = []
        self.result: EngineResult | None = None
        self.error: Exception | None = None

    def transform(self, source: str, path: str, options: TransformOptions) -> EngineResult:
        self.calls.append((source, path, options))
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        line_count = source.count("\n") + 1
        return EngineResult(
            code=f"// compiled {Path(path).name}\n{source}",
            source_map={
                "version": 3,
                "sources": [Path(path).name],
                "names": [],
                # Generated line 0 has no mapping; line n+1 maps to original line n.
                "mappings": ";" + ";".join(["AAAA"] + ["AACA"] * (line_count - 1)),
            },
        )


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


_ENV_VARS = (
    "TRANSFORM_CACHE_DIR",
    "TRANSFORM_IGNORE_CACHE",
    "TRANSFORM_COMPONENT_TESTING",
    "TRANSFORM_ESM",
    "TRANSFORM_ENGINE",
    "TS_NODE_PROJECT",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_source_map_support() -> Iterator[None]:
    yield
    uninstall_source_map_support()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def settings(cache_dir: Path) -> Settings:
    return Settings(cache_dir=cache_dir)


@pytest.fixture
def registry() -> SourceMapRegistry:
    return SourceMapRegistry()


@pytest.fixture
def resolver() -> ConfigResolver:
    return ConfigResolver(TsConfigDiscovery(env={}))


@pytest.fixture
def transformer(
    fake_engine: FakeEngine, settings: Settings, resolver: ConfigResolver, registry: SourceMapRegistry
) -> Transformer:
    return Transformer(fake_engine, settings, resolver=resolver, registry=registry)


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "project" / "src" / "widget.ts"
    path.parent.mkdir(parents=True)
    path.write_text("const answer: number = 42;\nexport default answer;\n", encoding="utf-8")
    return path


_SAMPLE_ENGINE = r'''
import os

from transform_cache.models import EngineResult


class SampleEngine:
    def transform(self, source, path, options):
        if "syntax error" in source:
            raise SyntaxError("unexpected token")
        name = os.path.basename(path)
        return EngineResult(
            code="// generated\n" + source.upper(),
            source_map={"version": 3, "sources": [name], "names": [], "mappings": ";AAAA"},
        )


class Factories:
    default = SampleEngine


instance = SampleEngine()
not_an_engine = 42
'''


@pytest.fixture
def engine_module(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    """Importable module ``sample_engine`` defining a trivial upper-casing engine."""
    module_dir = tmp_path / "engines"
    module_dir.mkdir()
    (module_dir / "sample_engine.py").write_text(_SAMPLE_ENGINE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(module_dir))
    monkeypatch.delitem(sys.modules, "sample_engine", raising=False)
    return "sample_engine"
