"""Shared test fixtures for Reprise.

The monitoring engine is exercised against scripted fakes: a remote
client that replays queued responses, a sleeper that records instead of
sleeping, and a renderer/sink that record every event.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from reprise.core.cancellation import CancellationToken
from reprise.errors import ApiError, LogNotAvailableError
from reprise.models.jobs import (
    JobHandle,
    JobKind,
    JobSnapshot,
    JobStatus,
    StageSnapshot,
    TriggerSpec,
)
from reprise.models.monitor import MonitorMode, PollContext
from reprise.notify import Notification

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_handle(job_id: str = "build-1", kind: JobKind = JobKind.BUILD) -> JobHandle:
    return JobHandle(app_slug="app-1", job_id=job_id, kind=kind)


def make_snapshot(
    status: JobStatus = JobStatus.RUNNING,
    *,
    handle: JobHandle | None = None,
    number: int | None = 42,
    duration_s: int | None = None,
    abort_reason: str | None = None,
    stages: list[StageSnapshot] | None = None,
    branch: str | None = "main",
    commit_message: str | None = None,
) -> JobSnapshot:
    finished = T0 + timedelta(seconds=duration_s) if duration_s is not None else None
    return JobSnapshot(
        handle=handle or make_handle(),
        status=status,
        title="primary",
        number=number,
        branch=branch,
        commit_message=commit_message,
        triggered_at=T0,
        started_at=T0 if duration_s is not None else None,
        finished_at=finished,
        abort_reason=abort_reason,
        stages=stages or [],
    )


def transient(status: int = 503) -> ApiError:
    return ApiError(status, "Service Unavailable")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClient:
    """Remote client replaying scripted status and log responses.

    Each queue entry is either a value or an exception to raise.  The last
    entry of a queue repeats once the queue is drained.
    """

    def __init__(
        self,
        statuses: list[Any] | None = None,
        logs: list[Any] | None = None,
        *,
        apps: list[str] | None = None,
    ) -> None:
        self.statuses = list(statuses or [])
        self.logs = list(logs or [])
        self.apps = list(apps or [])
        self.calls: list[tuple[str, Any]] = []
        self.triggered: list[TriggerSpec] = []
        self.rebuilt: list[tuple[JobHandle, bool]] = []
        self.aborted: list[tuple[JobHandle, str | None]] = []
        self.on_call: Callable[[str], None] | None = None
        self.closed = False

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def get_status(self, handle: JobHandle) -> JobSnapshot:
        self.calls.append(("get_status", handle))
        if self.on_call is not None:
            self.on_call("get_status")
        snapshot = self._next(self.statuses)
        if snapshot.handle != handle:
            snapshot = snapshot.model_copy(update={"handle": handle})
        return snapshot

    def get_log(self, handle: JobHandle) -> str:
        self.calls.append(("get_log", handle))
        if self.on_call is not None:
            self.on_call("get_log")
        if not self.logs:
            raise LogNotAvailableError("Log content is empty or not yet available.")
        return self._next(self.logs)

    def trigger(self, spec: TriggerSpec) -> JobHandle:
        self.calls.append(("trigger", spec))
        self.triggered.append(spec)
        return JobHandle(app_slug=spec.app_slug, job_id="new-job", kind=spec.kind)

    def rebuild(self, handle: JobHandle, partial: bool = False) -> JobHandle:
        self.calls.append(("rebuild", handle))
        self.rebuilt.append((handle, partial))
        return JobHandle(app_slug=handle.app_slug, job_id="rebuilt-job", kind=handle.kind)

    def abort(self, handle: JobHandle, reason: str | None = None) -> None:
        self.calls.append(("abort", handle))
        self.aborted.append((handle, reason))

    def list_app_slugs(self, limit: int = 50) -> list[str]:
        self.calls.append(("list_app_slugs", limit))
        return list(self.apps)

    def close(self) -> None:
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


class RecordingSleeper:
    """Sleeper that records requested durations and never blocks."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None) -> None:
        self.sleeps: list[float] = []
        self._on_sleep = on_sleep

    def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self._on_sleep is not None:
            self._on_sleep(seconds)

    @property
    def total(self) -> float:
        return sum(self.sleeps)


class RecordingRenderer:
    """OutputSink that records every event as ``(name, payload)``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def started(self, handle: JobHandle, mode: MonitorMode) -> None:
        self.events.append(("started", mode))

    def transition(self, snapshot: JobSnapshot) -> None:
        self.events.append(("transition", snapshot))

    def heartbeat(self, snapshot: JobSnapshot) -> None:
        self.events.append(("heartbeat", snapshot))

    def log_line(self, line: str) -> None:
        self.events.append(("log_line", line))

    def completed(self, snapshot: JobSnapshot) -> None:
        self.events.append(("completed", snapshot))

    def interrupted(self, handle: JobHandle) -> None:
        self.events.append(("interrupted", handle))

    def failed(self, handle: JobHandle, error: BaseException) -> None:
        self.events.append(("failed", error))

    def triggered(self, handle: JobHandle) -> None:
        self.events.append(("triggered", handle))

    def show(self, snapshot: JobSnapshot) -> None:
        self.events.append(("show", snapshot))

    def app_link(self, app_slug: str, url: str) -> None:
        self.events.append(("app_link", url))

    def aborted(self, snapshot: JobSnapshot, reason: str | None) -> None:
        self.events.append(("aborted", reason))

    def abort_skipped(self, snapshot: JobSnapshot) -> None:
        self.events.append(("abort_skipped", snapshot))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


class RecordingSink:
    """NotificationSink that records deliveries, optionally failing."""

    def __init__(self, name: str = "recording", *, fail: bool = False) -> None:
        self._name = name
        self._fail = fail
        self.sent: list[Notification] = []

    @property
    def sink_name(self) -> str:
        return self._name

    def send(self, notification: Notification) -> None:
        if self._fail:
            raise RuntimeError(f"{self._name} is down")
        self.sent.append(notification)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def handle() -> JobHandle:
    return make_handle()


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def context(token: CancellationToken, sleeper: RecordingSleeper) -> PollContext:
    """A PollContext that never blocks."""
    return PollContext(interval=3.0, max_retries=5, token=token, sleeper=sleeper)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
