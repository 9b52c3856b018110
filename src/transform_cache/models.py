from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class ModuleKind(StrEnum):
    MODULE = "module"
    SCRIPT = "script"


class UnitRole(StrEnum):
    NORMAL = "normal"
    COMPONENT_STUB = "component_stub"


class SourceUnit(BaseModel):
    """A single transform request. Never persisted."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    module_kind: ModuleKind = ModuleKind.SCRIPT
    role: UnitRole = UnitRole.NORMAL


class Location(BaseModel):
    """A 1-based source position."""

    model_config = ConfigDict(frozen=True)

    file: str | None
    line: int
    column: int


class RawPathConfig(BaseModel):
    """Path-aliasing settings as discovered on disk, before validation."""

    config_path: Path | None = None
    base_url: str | None = None
    paths: dict[str, list[str]] | None = None


class EngineResult(BaseModel):
    code: str | None = None
    source_map: dict[str, Any] | None = None


class ArtifactPaths(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    shard_dir: Path
    code_path: Path
    map_path: Path


class Artifact(BaseModel):
    key: str
    code: str
    source_map: dict[str, Any] | None = None


class TransformOutcome(BaseModel):
    code: str
    key: str | None = None
    cache_hit: bool = False
    role: UnitRole = UnitRole.NORMAL
