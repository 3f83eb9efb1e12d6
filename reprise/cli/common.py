"""Shared plumbing for the monitoring commands.

Every command resolves the same collaborators from the ``CliState``
attached to the Typer context: settings, API client, renderer, notifier,
cancellation token and ``PollContext``.  Tests inject fakes by passing a
pre-built ``CliState`` as ``obj`` to ``CliRunner.invoke``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from reprise.bridge.client import BitriseClient
from reprise.config import RepriseSettings, get_settings
from reprise.core.cancellation import (
    CancellationToken,
    install_interrupt_handler,
    installed_token,
)
from reprise.core.orchestrator import MonitorOrchestrator
from reprise.core.retry import RetryPolicy
from reprise.errors import ApiError, InvalidArgumentError, JobNotFoundError, RepriseError
from reprise.models.jobs import JobHandle, JobSnapshot
from reprise.models.monitor import MonitorMode, PollContext, Sleeper
from reprise.monitor.renderer import OutputSink, make_renderer
from reprise.notify import NotificationSink
from reprise.notify.desktop import DesktopNotificationSink
from reprise.notify.notifier import CompletionNotifier

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    PRETTY = "pretty"
    JSON = "json"


def make_client(settings: RepriseSettings) -> BitriseClient:
    """Build the real HTTP client from *settings*."""
    return BitriseClient(
        settings.require_token(),
        base_url=settings.api_base_url,
        timeout=settings.request_timeout,
    )


@dataclass
class CliState:
    """Per-invocation collaborators, resolved lazily.

    Parameters
    ----------
    settings:
        Loaded from the environment when not provided.
    client_factory:
        Builds the API client from the effective settings.
    sleeper:
        Replaces the interruptible poll wait and the retry backoff sleep.
    notification_sinks:
        Sinks used when ``--notify`` is given.  Desktop by default.
    handle_interrupts:
        Whether to route Ctrl+C to the invocation's cancellation token.
    cancel_token:
        Token shared by every loop of the invocation.  Created on first use.
    """

    settings: RepriseSettings | None = None
    client_factory: Callable[[RepriseSettings], Any] = make_client
    sleeper: Sleeper | None = None
    notification_sinks: list[NotificationSink] | None = None
    handle_interrupts: bool = True
    cancel_token: CancellationToken | None = None
    output: str | None = None
    _client: Any = field(default=None, init=False, repr=False)

    @property
    def effective_settings(self) -> RepriseSettings:
        if self.settings is None:
            self.settings = get_settings()
        return self.settings

    @property
    def output_format(self) -> str:
        return self.output or self.effective_settings.output_format

    def client(self) -> Any:
        if self._client is None:
            self._client = self.client_factory(self.effective_settings)
        return self._client

    def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()
        self._client = None

    def renderer(self) -> OutputSink:
        return make_renderer(
            self.output_format, web_base_url=self.effective_settings.web_base_url
        )

    def notifier(self, notify: bool) -> CompletionNotifier | None:
        """Return a notifier when notifications were requested, else ``None``."""
        if not (notify or self.effective_settings.notify):
            return None
        sinks = self.notification_sinks
        if sinks is None:
            sinks = [DesktopNotificationSink()]
        return CompletionNotifier(sinks)

    def cancellation_token(self) -> CancellationToken:
        """Return the token Ctrl+C toggles for this process."""
        if self.cancel_token is None:
            token = installed_token()
            if token is None:
                token = CancellationToken()
                if self.handle_interrupts:
                    install_interrupt_handler(token)
            self.cancel_token = token
        return self.cancel_token

    def poll_context(self, interval: float) -> PollContext:
        return PollContext(
            interval=interval,
            max_retries=self.effective_settings.max_retries,
            token=self.cancellation_token(),
            sleeper=self.sleeper,
        )

    def orchestrator(
        self, renderer: OutputSink, notify: bool = False
    ) -> MonitorOrchestrator:
        policy = RetryPolicy(
            self.effective_settings.max_retries,
            sleeper=self.sleeper or time.sleep,
        )
        return MonitorOrchestrator(
            self.client(),
            renderer,
            notifier=self.notifier(notify),
            retry_policy=policy,
        )


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    if state is None:
        state = CliState()
        ctx.obj = state
    return state


@contextmanager
def handled_errors(state: CliState | None = None) -> Iterator[None]:
    """Turn a ``RepriseError`` into an ``error:`` line and its exit code."""
    try:
        yield
    except RepriseError as exc:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[bold red]error:[/bold red] {escape(str(exc))}", soft_wrap=True)
        raise typer.Exit(code=exc.exit_code) from exc
    finally:
        if state is not None:
            state.close()


def select_mode(follow: bool, watch: bool) -> MonitorMode | None:
    """Map ``--follow``/``--watch`` to a monitoring mode (``None``: one-shot)."""
    if follow and watch:
        return MonitorMode.FOLLOW_WATCH
    if follow:
        return MonitorMode.FOLLOW
    if watch:
        return MonitorMode.WATCH
    return None


def parse_env_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Parse repeated ``--env KEY=VALUE`` options."""
    environments: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidArgumentError(f"Invalid --env value {pair!r}; expected KEY=VALUE")
        environments[key] = value
    return environments


def resolve_build(
    client: Any, build_slug: str, candidates: list[str | None]
) -> tuple[JobHandle, JobSnapshot]:
    """Find the app that owns *build_slug*.

    Tries each candidate app slug in order, then every app the token can
    see.  A 404 moves on to the next app; any other error propagates.
    """
    tried: set[str] = set()

    def _lookup(app_slug: str) -> JobSnapshot | None:
        tried.add(app_slug)
        handle = JobHandle(app_slug=app_slug, job_id=build_slug)
        try:
            return client.get_status(handle)
        except ApiError as exc:
            if exc.status == 404:
                return None
            raise

    for app_slug in candidates:
        if app_slug and app_slug not in tried:
            snapshot = _lookup(app_slug)
            if snapshot is not None:
                return snapshot.handle, snapshot

    for app_slug in client.list_app_slugs():
        if app_slug in tried:
            continue
        logger.debug("Looking for build %s in app %s", build_slug, app_slug)
        snapshot = _lookup(app_slug)
        if snapshot is not None:
            return snapshot.handle, snapshot

    raise JobNotFoundError(
        f"Build {build_slug} not found in any accessible app. Use --app to specify it."
    )


def confirm_abort(state: CliState, snapshot: JobSnapshot, yes: bool) -> bool:
    """Ask before aborting, unless ``--yes``, JSON output or nothing to abort."""
    if yes or state.output_format == "json" or snapshot.is_terminal():
        return True
    on_branch = f" on branch '{snapshot.branch}'" if snapshot.branch else ""
    if typer.confirm(f"Abort {snapshot.display_name}{on_branch}?", default=False, err=True):
        return True
    err_console.print("Not aborted.")
    return False
