from dataclasses import dataclass, field
from typing import Any, Protocol

from transform_cache.core.config_resolver import AliasRule
from transform_cache.models import EngineResult, ModuleKind


@dataclass(frozen=True)
class TransformOptions:
    """Everything an engine needs besides the source text and its path.

    ``plugins`` is the ordered transform chain by name; engines map each name onto
    their own implementation and ignore names they do not know.
    """

    module_kind: ModuleKind
    plugins: tuple[str, ...]
    alias_rules: tuple[AliasRule, ...] = ()
    strip_types: bool = True
    only_remove_type_imports: bool = True
    assumptions: dict[str, Any] = field(default_factory=dict)
    source_maps: str = "both"


class TransformEngine(Protocol):
    def transform(self, source: str, path: str, options: TransformOptions) -> EngineResult: ...
