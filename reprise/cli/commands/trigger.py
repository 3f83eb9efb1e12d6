"""``reprise trigger --workflow W`` — start a build, optionally waiting for it."""

from __future__ import annotations

import typer

from reprise.cli.common import get_state, handled_errors, parse_env_pairs
from reprise.models.jobs import JobKind, TriggerSpec


def trigger_cmd(
    ctx: typer.Context,
    workflow: str = typer.Option(
        ...,
        "--workflow",
        "-w",
        help="Workflow to run.",
    ),
    app: str = typer.Option(
        None,
        "--app",
        "-a",
        help="App slug (defaults to REPRISE_DEFAULT_APP).",
    ),
    branch: str = typer.Option(None, "--branch", "-b", help="Branch to build."),
    message: str = typer.Option(None, "--message", "-m", help="Commit message."),
    env: list[str] = typer.Option(
        None,
        "--env",
        "-e",
        help="Environment variable KEY=VALUE (repeatable).",
    ),
    wait: bool = typer.Option(
        False,
        "--wait",
        help="Block until the build finishes.",
    ),
    interval: float = typer.Option(
        10.0,
        "--interval",
        "-i",
        min=0.0,
        help="Seconds between polls when waiting.",
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        "-n",
        help="Show a desktop notification when the build finishes.",
    ),
) -> None:
    """Trigger a new build."""
    state = get_state(ctx)
    with handled_errors(state):
        spec = TriggerSpec(
            app_slug=state.effective_settings.require_app(app),
            kind=JobKind.BUILD,
            target=workflow,
            branch=branch,
            commit_message=message,
            environments=parse_env_pairs(env),
        )
        orchestrator = state.orchestrator(state.renderer(), notify)
        if wait:
            orchestrator.trigger_and_wait(spec, state.poll_context(interval))
        else:
            orchestrator.trigger(spec)
