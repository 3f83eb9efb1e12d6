"""Main Typer application — imports and registers all CLI commands.

Entry point: ``reprise`` (configured via pyproject.toml console_scripts).

Commands: build, log, trigger, abort, pipeline (show / trigger / rebuild /
watch / abort), url.
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from reprise import __version__
from reprise.cli.commands.abort import abort_cmd
from reprise.cli.commands.build import build_cmd
from reprise.cli.commands.log import log_cmd
from reprise.cli.commands.pipeline import pipeline_app
from reprise.cli.commands.trigger import trigger_cmd
from reprise.cli.commands.url import url_cmd
from reprise.cli.common import OutputFormat, get_state

app = typer.Typer(
    name="reprise",
    help="Reprise: Bitrise builds and pipelines from the terminal, with live monitoring.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="build", help="Show, follow or watch a build.")(build_cmd)
app.command(name="log", help="Print or follow a build log.")(log_cmd)
app.command(name="trigger", help="Trigger a new build.")(trigger_cmd)
app.command(name="abort", help="Abort a running build.")(abort_cmd)
app.command(name="url", help="Show, watch or follow the job behind a Bitrise URL.")(url_cmd)
app.add_typer(pipeline_app, name="pipeline")


def _configure_logging(level: str) -> None:
    root = logging.getLogger("reprise")
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    )
    root.setLevel(level.upper())


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"reprise {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    output: Optional[OutputFormat] = typer.Option(
        None,
        "--output",
        "-o",
        case_sensitive=False,
        help="Output format (defaults to REPRISE_OUTPUT_FORMAT or pretty).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Bitrise API token (overrides REPRISE_API_TOKEN).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging on stderr.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Global options shared by every command."""
    state = get_state(ctx)
    settings = state.effective_settings
    if token:
        state.settings = settings.model_copy(update={"api_token": token})
    if output is not None:
        state.output = output.value
    _configure_logging("DEBUG" if verbose else settings.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
