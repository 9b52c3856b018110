import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from transform_cache.cli.transform import EngineOption, _get_transformer
from transform_cache.core.ports.watcher import FileWatcherPort
from transform_cache.core.warm import WarmReport, iter_source_files, warm_files
from transform_cache.models import ModuleKind
from transform_cache.watcher.watchfiles_adapter import WatchfilesWatcher

console = Console(stderr=True)

DirectoryArgument = Annotated[Path, typer.Argument(exists=True, file_okay=False, help="Directory to scan.")]
ModuleOption = Annotated[bool, typer.Option("--module", help="Emit native module form instead of script form.")]


def _print_report(report: WarmReport) -> None:
    console.print(
        f"[green]{len(report.hits)} hit(s)[/green], [yellow]{len(report.misses)} miss(es)[/yellow], "
        f"{len(report.stubs)} stub(s), [red]{len(report.failures)} failure(s)[/red]"
    )
    for file_path, reason in report.failures.items():
        console.print(f"  [red]{file_path}[/red]: {reason}")


def warm(directory: DirectoryArgument, module: ModuleOption = False, engine: EngineOption = None) -> None:
    """Transform every source file under a directory."""
    transformer = _get_transformer(engine)
    module_kind = ModuleKind.MODULE if module else ModuleKind.SCRIPT
    report = warm_files(transformer, iter_source_files(directory), module_kind)
    _print_report(report)
    if report.failures:
        raise typer.Exit(1)


def watch(directory: DirectoryArgument, module: ModuleOption = False, engine: EngineOption = None) -> None:
    """Keep the cache warm while files under a directory change."""
    transformer = _get_transformer(engine)
    module_kind = ModuleKind.MODULE if module else ModuleKind.SCRIPT

    async def _on_change(paths: set[Path]) -> None:
        report = await asyncio.to_thread(warm_files, transformer, sorted(paths), module_kind)
        _print_report(report)

    async def _run() -> None:
        _print_report(warm_files(transformer, iter_source_files(directory), module_kind))
        watcher: FileWatcherPort = WatchfilesWatcher(
            directory, _on_change, ignore_roots=[transformer.store.cache_dir]
        )
        await watcher.start()
        console.print(f"[green]Watching {directory}[/green] (Ctrl+C to stop)")
        try:
            await watcher.wait()
        finally:
            await watcher.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped.")
