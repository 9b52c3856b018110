"""Cached just-in-time transform of a single source file.

``Transformer.run`` walks one request through: component stub check, configuration
lookup, cache read, engine call on a miss, and persistence of the result.
"""

import logging

from transform_cache.core.cache_key import compute_cache_key
from transform_cache.core.components import COMPONENT_STUB, is_component_import
from transform_cache.core.config_resolver import ConfigFingerprint, ConfigResolver, get_default_resolver
from transform_cache.core.ports.engine import TransformEngine, TransformOptions
from transform_cache.errors import TransformError
from transform_cache.models import EngineResult, ModuleKind, SourceUnit, TransformOutcome, UnitRole
from transform_cache.settings import Settings
from transform_cache.store.artifacts import ArtifactStore
from transform_cache.store.registry import SourceMapRegistry, get_default_registry

logger = logging.getLogger(__name__)

_BASE_PLUGINS = (
    "proposal-class-properties",
    "proposal-numeric-separator",
    "proposal-logical-assignment-operators",
    "proposal-nullish-coalescing-operator",
    "proposal-optional-chaining",
    "syntax-json-strings",
    "syntax-optional-catch-binding",
    "syntax-async-generators",
    "syntax-object-rest-spread",
    "proposal-export-namespace-from",
)


def build_transform_options(
    fingerprint: ConfigFingerprint | None,
    module_kind: ModuleKind,
    component_testing: bool = False,
) -> TransformOptions:
    plugins = list(_BASE_PLUGINS)
    if fingerprint is not None:
        plugins.append("module-resolver")
    if component_testing:
        plugins.insert(0, "transform-react-jsx")
    if module_kind is ModuleKind.SCRIPT:
        plugins.append("transform-modules-commonjs")
        plugins.append("proposal-dynamic-import")
    return TransformOptions(
        module_kind=module_kind,
        plugins=tuple(plugins),
        alias_rules=fingerprint.alias_rules if fingerprint else (),
        assumptions={"setPublicClassFields": True},
    )


class Transformer:
    """Runs source units through the cache.

    Without explicit ``settings`` the environment is re-read on every request, so
    component-testing mode, the build mode and the ignore-cache override follow the
    live environment. The cache root is fixed when the transformer is built. The
    resolver and registry default to the process-wide instances.
    """

    def __init__(
        self,
        engine: TransformEngine,
        settings: Settings | None = None,
        *,
        resolver: ConfigResolver | None = None,
        store: ArtifactStore | None = None,
        registry: SourceMapRegistry | None = None,
    ) -> None:
        self.engine = engine
        self._settings = settings
        self.resolver = resolver if resolver is not None else get_default_resolver()
        if store is None:
            # With live settings the store reads the ignore-cache variable itself.
            pinned = settings is not None and settings.ignore_cache
            store = ArtifactStore(self.settings.cache_dir, ignore_cache=pinned)
        self.store = store
        self.registry = registry if registry is not None else get_default_registry()

    @property
    def settings(self) -> Settings:
        return self._settings if self._settings is not None else Settings.from_env()

    def transform(self, source_text: str, file_path: str, is_module: bool = False) -> str:
        unit = SourceUnit(
            path=file_path,
            content=source_text,
            module_kind=ModuleKind.MODULE if is_module else ModuleKind.SCRIPT,
        )
        return self.run(unit).code

    def run(self, unit: SourceUnit) -> TransformOutcome:
        settings = self.settings
        if settings.component_testing and is_component_import(unit.path):
            return TransformOutcome(code=COMPONENT_STUB, role=UnitRole.COMPONENT_STUB)

        fingerprint = self.resolver.resolve_for(unit.path)
        key = compute_cache_key(fingerprint, settings.build_mode, unit.content, unit.path)
        paths = self.store.locate(key, unit.path)
        # Registered on hits as well: locations must resolve however the code was obtained.
        self.registry.register(unit.path, paths.map_path)

        artifact = self.store.try_read(paths)
        if artifact is not None:
            logger.debug("Cache hit for %s (%s)", unit.path, key)
            return TransformOutcome(code=artifact.code, key=key, cache_hit=True)

        logger.debug("Cache miss for %s (%s)", unit.path, key)
        options = build_transform_options(fingerprint, unit.module_kind, settings.component_testing)
        result = self._call_engine(unit, options)
        if result.code:
            self.store.write(paths, result.code, result.source_map)
        return TransformOutcome(code=result.code or "", key=key)

    def _call_engine(self, unit: SourceUnit, options: TransformOptions) -> EngineResult:
        try:
            result = self.engine.transform(unit.content, unit.path, options)
        except TransformError:
            raise
        except Exception as exc:
            raise TransformError(unit.path, f"transform engine failed: {exc}") from exc
        if not isinstance(result, EngineResult):
            raise TransformError(unit.path, f"transform engine returned {type(result).__name__}, not EngineResult")
        return result
