"""``reprise build SLUG`` — show a build, optionally following or watching it.

Without flags the build's current status is printed once.  ``--watch``
prints every status transition; ``--follow`` streams the log; both
together stream the log and report transitions.
"""

from __future__ import annotations

import typer

from reprise.cli.common import get_state, handled_errors, select_mode
from reprise.models.jobs import JobHandle


def build_cmd(
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
        help="Stream the build log until the build finishes.",
    ),
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Print status transitions until the build finishes.",
    ),
    interval: float = typer.Option(
        3.0,
        "--interval",
        "-i",
        min=0.0,
        help="Seconds between polls.",
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        "-n",
        help="Show a desktop notification when the build finishes.",
    ),
) -> None:
    """Show, follow or watch a build."""
    state = get_state(ctx)
    with handled_errors(state):
        handle = JobHandle(
            app_slug=state.effective_settings.require_app(app), job_id=slug
        )
        renderer = state.renderer()
        mode = select_mode(follow, watch)
        if mode is None:
            renderer.show(state.client().get_status(handle))
            return

        orchestrator = state.orchestrator(renderer, notify)
        orchestrator.run(handle, mode, state.poll_context(interval))
