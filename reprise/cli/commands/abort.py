"""``reprise abort SLUG`` — stop a running build."""

from __future__ import annotations

import typer

from reprise.cli.common import confirm_abort, get_state, handled_errors
from reprise.models.jobs import JobHandle


def abort_cmd(
    ctx: typer.Context,
    slug: str = typer.Argument(..., help="The build slug."),
    app: str = typer.Option(
        None,
        "--app",
        "-a",
        help="App slug (defaults to REPRISE_DEFAULT_APP).",
    ),
    reason: str = typer.Option(
        None,
        "--reason",
        "-r",
        help="Abort reason shown in the Bitrise UI.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the confirmation prompt.",
    ),
) -> None:
    """Abort a running build."""
    state = get_state(ctx)
    with handled_errors(state):
        handle = JobHandle(
            app_slug=state.effective_settings.require_app(app), job_id=slug
        )
        snapshot = state.client().get_status(handle)
        if confirm_abort(state, snapshot, yes):
            state.orchestrator(state.renderer()).abort(snapshot, reason)
