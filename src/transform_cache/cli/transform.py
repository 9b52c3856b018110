from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from transform_cache.core.cache_key import compute_cache_key
from transform_cache.core.config_resolver import get_default_resolver
from transform_cache.core.engine_loader import load_engine
from transform_cache.core.transform import Transformer
from transform_cache.errors import EngineLoadError, TransformError
from transform_cache.location.support import install_source_map_support, map_location, uninstall_source_map_support
from transform_cache.models import ModuleKind, SourceUnit
from transform_cache.settings import Settings
from transform_cache.store import ArtifactStore, SourceMapRegistry

console = Console(stderr=True)

EngineOption = Annotated[
    str | None,
    typer.Option("--engine", help="Engine import string 'module:attribute' (defaults to $TRANSFORM_ENGINE)."),
]
FileArgument = Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Source file.")]


def _get_transformer(engine: str | None) -> Transformer:
    settings = Settings.from_env()
    spec = engine or settings.engine
    if not spec:
        console.print("[red]No transform engine configured.[/red] Pass --engine or set TRANSFORM_ENGINE.")
        raise typer.Exit(1)
    try:
        return Transformer(load_engine(spec))
    except EngineLoadError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def transform(
    file: FileArgument,
    module: Annotated[bool, typer.Option("--module", help="Emit native module form instead of script form.")] = False,
    engine: EngineOption = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write code here instead of stdout.")] = None,
) -> None:
    """Transform a file through the cache."""
    transformer = _get_transformer(engine)
    file_path = str(file.resolve())
    unit = SourceUnit(
        path=file_path,
        content=file.read_text(encoding="utf-8"),
        module_kind=ModuleKind.MODULE if module else ModuleKind.SCRIPT,
    )
    try:
        outcome = transformer.run(unit)
    except TransformError as exc:
        console.print(f"[red]Transform failed:[/red] {exc}")
        raise typer.Exit(1) from exc

    status = "[green]hit[/green]" if outcome.cache_hit else "[yellow]miss[/yellow]"
    console.print(f"{status} {file_path} ({outcome.role.value})")
    if output is not None:
        output.write_text(outcome.code, encoding="utf-8")
    else:
        typer.echo(outcome.code)


def key(file: FileArgument) -> None:
    """Show the cache key and artifact paths for a file."""
    settings = Settings.from_env()
    file_path = str(file.resolve())
    fingerprint = get_default_resolver().resolve_for(file_path)
    cache_key = compute_cache_key(fingerprint, settings.build_mode, file.read_text(encoding="utf-8"), file_path)
    paths = ArtifactStore(settings.cache_dir).locate(cache_key, file_path)

    table = Table(show_header=False)
    table.add_row("key", cache_key)
    table.add_row("build mode", settings.build_mode)
    table.add_row("code", str(paths.code_path))
    table.add_row("map", str(paths.map_path))
    table.add_row("cached", "yes" if paths.code_path.exists() else "no")
    Console().print(table)


def config(file: FileArgument) -> None:
    """Show the path aliases that apply to a file."""
    fingerprint = get_default_resolver().resolve_for(str(file.resolve()))
    if fingerprint is None:
        Console().print("No path aliases apply to this file.")
        return
    table = Table(title=f"Path aliases (base {fingerprint.base_dir})")
    table.add_column("pattern")
    table.add_column("target")
    for rule in fingerprint.alias_rules:
        table.add_row(rule.pattern, rule.target)
    Console().print(table)


def locate(
    file: FileArgument,
    line: Annotated[int, typer.Argument(min=1, help="1-based line in the generated code.")],
    column: Annotated[int, typer.Argument(min=1, help="1-based column in the generated code.")] = 1,
) -> None:
    """Map a position in a file's cached output back to the original source."""
    settings = Settings.from_env()
    file_path = str(file.resolve())
    fingerprint = get_default_resolver().resolve_for(file_path)
    cache_key = compute_cache_key(fingerprint, settings.build_mode, file.read_text(encoding="utf-8"), file_path)
    registry = SourceMapRegistry()
    registry.register(file_path, ArtifactStore(settings.cache_dir).locate(cache_key, file_path).map_path)

    install_source_map_support(registry)
    try:
        location = map_location(file_path, line, column)
    finally:
        uninstall_source_map_support()
    typer.echo(f"{location.file}:{location.line}:{location.column}")
