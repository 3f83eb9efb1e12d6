"""``reprise url URL`` — act on a pasted Bitrise web URL.

- app URL      : print the app slug and its web URL.
- build URL    : find the owning app, then show / watch / follow the build,
                 or abort it, or re-run it with the same workflow and branch.
- pipeline URL : show or watch the pipeline.

A ``--watch`` on a job that already finished just shows its final status.
"""

from __future__ import annotations

import typer

from reprise.bridge.url_parser import UrlKind, parse_job_url
from reprise.cli.common import (
    confirm_abort,
    get_state,
    handled_errors,
    resolve_build,
    select_mode,
)
from reprise.errors import InvalidArgumentError
from reprise.models.monitor import MonitorMode


def url_cmd(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="A Bitrise app, build or pipeline URL."),
    app: str = typer.Option(
        None,
        "--app",
        "-a",
        help="App slug owning the build (skips the lookup).",
    ),
    watch: bool = typer.Option(
        False,
        "--watch",
        "-w",
        help="Print status transitions until the job finishes.",
    ),
    follow: bool = typer.Option(
        False,
        "--follow",
        "-f",
        help="Stream the build log until the build finishes (builds only).",
    ),
    interval: float = typer.Option(
        5.0,
        "--interval",
        "-i",
        min=0.0,
        help="Seconds between polls.",
    ),
    notify: bool = typer.Option(
        False,
        "--notify",
        "-n",
        help="Show a desktop notification when the job finishes.",
    ),
    abort: bool = typer.Option(
        False,
        "--abort",
        help="Abort the build (builds only).",
    ),
    reason: str = typer.Option(
        None,
        "--reason",
        "-r",
        help="Abort reason shown in the Bitrise UI (with --abort).",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip the abort confirmation prompt.",
    ),
    retry: bool = typer.Option(
        False,
        "--retry",
        help="Start a new build with the same workflow, branch and message.",
    ),
    retry_wait: bool = typer.Option(
        False,
        "--retry-wait",
        help="Like --retry, then wait for the new build to finish.",
    ),
) -> None:
    """Show, watch, follow, abort or retry the job behind a Bitrise URL."""
    state = get_state(ctx)
    with handled_errors(state):
        parsed = parse_job_url(url)
        mode = select_mode(follow, watch)
        renderer = state.renderer()

        retry = retry or retry_wait
        if abort and retry:
            raise InvalidArgumentError("--abort and --retry cannot be combined")
        if (abort or retry) and mode is not None:
            raise InvalidArgumentError(
                "--abort and --retry cannot be combined with --watch or --follow"
            )
        if (abort or retry) and parsed.kind is not UrlKind.BUILD:
            raise InvalidArgumentError(
                "--abort and --retry are only supported for build URLs "
                "(use 'pipeline abort' or 'pipeline rebuild' for pipelines)"
            )

        if parsed.kind is UrlKind.APP:
            if mode is not None:
                raise InvalidArgumentError("--watch and --follow need a build or pipeline URL")
            renderer.app_link(parsed.app_slug or "", parsed.to_url())
            return
        if follow and parsed.kind is not UrlKind.BUILD:
            raise InvalidArgumentError("--follow is only supported for build URLs")

        client = state.client()
        if parsed.kind is UrlKind.BUILD:
            handle, snapshot = resolve_build(
                client,
                parsed.job_id or "",
                [app, state.effective_settings.default_app],
            )
        else:
            handle = parsed.to_handle()
            snapshot = client.get_status(handle)

        if abort:
            if confirm_abort(state, snapshot, yes):
                state.orchestrator(renderer).abort(snapshot, reason)
            return
        if retry:
            orchestrator = state.orchestrator(renderer, notify)
            if retry_wait:
                orchestrator.retry_and_wait(snapshot, state.poll_context(interval))
            else:
                orchestrator.retry(snapshot)
            return

        if mode is None or (mode is MonitorMode.WATCH and snapshot.is_terminal()):
            renderer.show(snapshot)
            return

        orchestrator = state.orchestrator(renderer, notify)
        orchestrator.run(handle, mode, state.poll_context(interval))
