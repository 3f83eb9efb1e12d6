"""``reprise pipeline ...`` — show, trigger, rebuild, watch and abort pipelines.

Pipelines have no single log, so there is no ``--follow`` here.
"""

from __future__ import annotations

import typer

from reprise.cli.common import confirm_abort, get_state, handled_errors, parse_env_pairs
from reprise.models.jobs import JobHandle, JobKind, TriggerSpec
from reprise.models.monitor import MonitorMode

pipeline_app = typer.Typer(
    name="pipeline",
    help="Show, trigger, rebuild, watch and abort pipelines.",
    no_args_is_help=True,
    add_completion=False,
)

_APP_HELP = "App slug (defaults to REPRISE_DEFAULT_APP)."
_NOTIFY_HELP = "Show a desktop notification when the pipeline finishes."


@pipeline_app.command(name="show", help="Show a pipeline's status.")
def show_cmd(
    ctx: typer.Context,
    pipeline_id: str = typer.Argument(..., help="The pipeline id."),
    app: str = typer.Option(None, "--app", "-a", help=_APP_HELP),
) -> None:
    state = get_state(ctx)
    with handled_errors(state):
        handle = _handle(state.effective_settings.require_app(app), pipeline_id)
        state.renderer().show(state.client().get_status(handle))


@pipeline_app.command(name="trigger", help="Trigger a pipeline.")
def trigger_cmd(
    ctx: typer.Context,
    pipeline: str = typer.Argument(..., help="The pipeline name to run."),
    app: str = typer.Option(None, "--app", "-a", help=_APP_HELP),
    branch: str = typer.Option(None, "--branch", "-b", help="Branch to build."),
    env: list[str] = typer.Option(
        None, "--env", "-e", help="Environment variable KEY=VALUE (repeatable)."
    ),
    wait: bool = typer.Option(False, "--wait", help="Block until the pipeline finishes."),
    interval: float = typer.Option(
        10.0, "--interval", "-i", min=0.0, help="Seconds between polls when waiting."
    ),
    notify: bool = typer.Option(False, "--notify", "-n", help=_NOTIFY_HELP),
) -> None:
    state = get_state(ctx)
    with handled_errors(state):
        spec = TriggerSpec(
            app_slug=state.effective_settings.require_app(app),
            kind=JobKind.PIPELINE,
            target=pipeline,
            branch=branch,
            environments=parse_env_pairs(env),
        )
        orchestrator = state.orchestrator(state.renderer(), notify)
        if wait:
            orchestrator.trigger_and_wait(spec, state.poll_context(interval))
        else:
            orchestrator.trigger(spec)


@pipeline_app.command(name="rebuild", help="Rebuild a pipeline.")
def rebuild_cmd(
    ctx: typer.Context,
    pipeline_id: str = typer.Argument(..., help="The pipeline id."),
    app: str = typer.Option(None, "--app", "-a", help=_APP_HELP),
    partial: bool = typer.Option(
        False, "--partial", help="Only re-run failed and subsequent workflows."
    ),
    wait: bool = typer.Option(False, "--wait", help="Block until the pipeline finishes."),
    interval: float = typer.Option(
        10.0, "--interval", "-i", min=0.0, help="Seconds between polls when waiting."
    ),
    notify: bool = typer.Option(False, "--notify", "-n", help=_NOTIFY_HELP),
) -> None:
    state = get_state(ctx)
    with handled_errors(state):
        handle = _handle(state.effective_settings.require_app(app), pipeline_id)
        orchestrator = state.orchestrator(state.renderer(), notify)
        if wait:
            orchestrator.rebuild_and_wait(handle, state.poll_context(interval), partial=partial)
        else:
            orchestrator.rebuild(handle, partial=partial)


@pipeline_app.command(name="watch", help="Watch a pipeline until it finishes.")
def watch_cmd(
    ctx: typer.Context,
    pipeline_id: str = typer.Argument(..., help="The pipeline id."),
    app: str = typer.Option(None, "--app", "-a", help=_APP_HELP),
    interval: float = typer.Option(
        5.0, "--interval", "-i", min=0.0, help="Seconds between polls."
    ),
    notify: bool = typer.Option(False, "--notify", "-n", help=_NOTIFY_HELP),
) -> None:
    state = get_state(ctx)
    with handled_errors(state):
        handle = _handle(state.effective_settings.require_app(app), pipeline_id)
        orchestrator = state.orchestrator(state.renderer(), notify)
        orchestrator.run(handle, MonitorMode.WATCH, state.poll_context(interval))


@pipeline_app.command(name="abort", help="Abort a running pipeline.")
def abort_cmd(
    ctx: typer.Context,
    pipeline_id: str = typer.Argument(..., help="The pipeline id."),
    app: str = typer.Option(None, "--app", "-a", help=_APP_HELP),
    reason: str = typer.Option(
        None, "--reason", "-r", help="Abort reason shown in the Bitrise UI."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    state = get_state(ctx)
    with handled_errors(state):
        handle = _handle(state.effective_settings.require_app(app), pipeline_id)
        snapshot = state.client().get_status(handle)
        if confirm_abort(state, snapshot, yes):
            state.orchestrator(state.renderer()).abort(snapshot, reason)


def _handle(app_slug: str, pipeline_id: str) -> JobHandle:
    return JobHandle(app_slug=app_slug, job_id=pipeline_id, kind=JobKind.PIPELINE)
