"""Unit tests for bulk cache warming."""

from pathlib import Path

from transform_cache.core.config_resolver import ConfigResolver
from transform_cache.core.transform import Transformer
from transform_cache.core.tsconfig import TsConfigDiscovery
from transform_cache.core.warm import iter_source_files, warm_files
from transform_cache.models import ModuleKind
from transform_cache.settings import Settings
from transform_cache.store.registry import SourceMapRegistry


def _tree(root: Path) -> None:
    for relative in [
        "src/a.ts",
        "src/nested/b.tsx",
        "src/readme.md",
        "src/c.js",
        "node_modules/pkg/index.ts",
        ".git/hooks/x.ts",
    ]:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"// {relative}\n", encoding="utf-8")


def test_iter_source_files_skips_vendored_and_foreign(tmp_path: Path) -> None:
    _tree(tmp_path)
    found = [p.relative_to(tmp_path).as_posix() for p in iter_source_files(tmp_path)]
    assert found == ["src/a.ts", "src/nested/b.tsx"]


def test_first_pass_misses_second_pass_hits(tmp_path: Path, transformer: Transformer) -> None:
    _tree(tmp_path)

    first = warm_files(transformer, iter_source_files(tmp_path))
    second = warm_files(transformer, iter_source_files(tmp_path))

    assert len(first.misses) == 2
    assert first.hits == []
    assert len(second.hits) == 2
    assert second.misses == []
    assert second.total == 2


def test_module_kind_is_forwarded(tmp_path: Path, transformer: Transformer, fake_engine) -> None:  # type: ignore[no-untyped-def]
    _tree(tmp_path)
    warm_files(transformer, iter_source_files(tmp_path), ModuleKind.MODULE)
    assert {options.module_kind for _, _, options in fake_engine.calls} == {ModuleKind.MODULE}


def test_failures_are_collected(tmp_path: Path, transformer: Transformer, fake_engine) -> None:  # type: ignore[no-untyped-def]
    _tree(tmp_path)
    fake_engine.error = SyntaxError("Unexpected token")
    missing = tmp_path / "src" / "gone.ts"

    report = warm_files(transformer, [*iter_source_files(tmp_path), missing])

    assert len(report.failures) == 3
    assert str(missing.resolve()) in report.failures
    assert "Unexpected token" in report.failures[str((tmp_path / "src" / "a.ts").resolve())]


def test_component_stubs_are_reported(tmp_path: Path, cache_dir: Path, fake_engine) -> None:  # type: ignore[no-untyped-def]
    _tree(tmp_path)
    transformer = Transformer(
        fake_engine,
        Settings(cache_dir=cache_dir, component_testing=True),
        resolver=ConfigResolver(TsConfigDiscovery(env={})),
        registry=SourceMapRegistry(),
    )

    report = warm_files(transformer, iter_source_files(tmp_path))

    assert report.stubs == [str((tmp_path / "src" / "nested" / "b.tsx").resolve())]
    assert len(report.misses) == 1
