import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from transform_cache.cli.transform import config, key, locate, transform
from transform_cache.cli.warm import warm, watch

app = typer.Typer(
    name="transform-cache",
    help="Transform cache CLI — transform source files through a content-addressed cache.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("transform")(transform)
app.command("key")(key)
app.command("config")(config)
app.command("locate")(locate)
app.command("warm")(warm)
app.command("watch")(watch)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("transform_cache")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log cache hits, misses and writes.")] = False,
) -> None:
    _configure_logging(verbose)


def main() -> None:
    app()
