import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from transform_cache.core.transform import Transformer
from transform_cache.errors import TransformError
from transform_cache.models import ModuleKind, SourceUnit, UnitRole

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS: frozenset[str] = frozenset({".ts", ".tsx"})
_SKIPPED_DIRS = frozenset({"node_modules", ".git"})


@dataclass
class WarmReport:
    hits: list[str] = field(default_factory=list)
    misses: list[str] = field(default_factory=list)
    stubs: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.hits) + len(self.misses) + len(self.stubs) + len(self.failures)


def iter_source_files(root: Path) -> Iterator[Path]:
    for path in sorted(root.rglob("*")):
        if path.suffix not in SOURCE_EXTENSIONS or not path.is_file():
            continue
        if _SKIPPED_DIRS.intersection(path.relative_to(root).parts):
            continue
        yield path


def warm_files(
    transformer: Transformer,
    files: Iterable[Path],
    module_kind: ModuleKind = ModuleKind.SCRIPT,
) -> WarmReport:
    """Run every file through the cache, collecting per-file failures instead of stopping."""
    report = WarmReport()
    for path in files:
        file_path = str(path.resolve())
        try:
            content = path.read_text(encoding="utf-8")
            outcome = transformer.run(SourceUnit(path=file_path, content=content, module_kind=module_kind))
        except (TransformError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to transform %s: %s", file_path, exc)
            report.failures[file_path] = str(exc)
            continue
        if outcome.role is UnitRole.COMPONENT_STUB:
            report.stubs.append(file_path)
        elif outcome.cache_hit:
            report.hits.append(file_path)
        else:
            report.misses.append(file_path)
    return report
