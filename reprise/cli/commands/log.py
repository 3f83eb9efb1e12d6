"""``reprise log SLUG`` — print or follow a build log.

``--tail N`` limits the initial output to the last N lines.  With
``--follow`` the lines already printed are not repeated.
"""

from __future__ import annotations

import logging

import typer

from reprise.cli.common import get_state, handled_errors
from reprise.core.tailer import split_log_lines
from reprise.errors import InvalidArgumentError, LogNotAvailableError
from reprise.models.jobs import JobHandle
from reprise.models.monitor import MonitorMode, TailState

logger = logging.getLogger(__name__)


def log_cmd(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="The build slug."),
    app: str = typer.Option(
        None,
        "--app",
        "-a",
        help="App slug (defaults to REPRISE_DEFAULT_APP).",
    ),
    follow: bool = typer.Option(
        False,
        "--follow",
        "-f",
        help="Keep printing new lines until the build finishes.",
    ),
    tail: int = typer.Option(
        None,
        "--tail",
        "-t",
        help="Only print the last N lines.",
    ),
    interval: float = typer.Option(
        3.0,
        "--interval",
        "-i",
        min=0.0,
        help="Seconds between polls when following.",
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        "-n",
        help="Show a desktop notification when the build finishes (with --follow).",
    ),
) -> None:
    """Print a build's log."""
    state = get_state(ctx)
    with handled_errors(state):
        if tail is not None and tail < 0:
            raise InvalidArgumentError("--tail must not be negative")
        handle = JobHandle(
            app_slug=state.effective_settings.require_app(app), job_id=slug
        )
        renderer = state.renderer()
        client = state.client()

        if not follow:
            lines = split_log_lines(client.get_log(handle))
            for line in _last(lines, tail):
                renderer.log_line(line)
            return

        tail_state = TailState(handle=handle)
        if tail is not None:
            try:
                lines = split_log_lines(client.get_log(handle), final=False)
            except LogNotAvailableError:
                logger.debug("No log yet for %s; following from the start", handle)
            else:
                for line in _last(lines, tail):
                    renderer.log_line(line)
                tail_state.line_count = len(lines)

        orchestrator = state.orchestrator(renderer, notify)
        orchestrator.run(
            handle, MonitorMode.FOLLOW, state.poll_context(interval), tail_state=tail_state
        )


def _last(lines: list[str], count: int | None) -> list[str]:
    if count is None:
        return lines
    return lines[len(lines) - count:] if count < len(lines) else lines
