"""Unit tests for MonitorOrchestrator — mode composition and event flow."""

from __future__ import annotations

import pytest

from conftest import FakeClient, RecordingSink, make_handle, make_snapshot
from reprise.core.orchestrator import MonitorOrchestrator
from reprise.errors import ApiError, InvalidArgumentError
from reprise.models.jobs import JobKind, JobStatus, StageSnapshot, TriggerSpec
from reprise.models.monitor import MonitorMode, MonitorOutcome
from reprise.notify.notifier import CompletionNotifier

RUNNING = JobStatus.RUNNING
SUCCESS = JobStatus.SUCCESS
FAILED = JobStatus.FAILED


def _orchestrator(client, renderer, sink=None):
    notifier = CompletionNotifier([sink]) if sink is not None else None
    return MonitorOrchestrator(client, renderer, notifier=notifier)


# ---------------------------------------------------------------------------
# Test: modes
# ---------------------------------------------------------------------------


class TestModes:
    def test_wait_renders_heartbeats_then_summary(self, handle, context, renderer):
        final = make_snapshot(SUCCESS, duration_s=61)
        client = FakeClient(statuses=[make_snapshot(RUNNING), make_snapshot(RUNNING), final])

        result = _orchestrator(client, renderer).wait(handle, context)

        assert renderer.names() == ["started", "heartbeat", "heartbeat", "completed"]
        assert renderer.payloads("completed") == [final]
        assert result.snapshot.duration_display() == "1m 1s"

    def test_watch_renders_each_transition(self, handle, context, renderer, sleeper):
        client = FakeClient(
            statuses=[make_snapshot(RUNNING), make_snapshot(RUNNING), make_snapshot(FAILED)]
        )

        _orchestrator(client, renderer).watch(handle, context)

        transitions = renderer.payloads("transition")
        assert [s.status for s in transitions] == [RUNNING, FAILED]
        assert renderer.names()[-1] == "completed"
        assert len(sleeper.sleeps) == 2

    def test_watch_pipeline_carries_stages(self, context, renderer):
        pipeline = make_handle("pl-1", JobKind.PIPELINE)
        stages = [StageSnapshot(name="build", status=SUCCESS), StageSnapshot(name="test", status=RUNNING)]
        client = FakeClient(
            statuses=[
                make_snapshot(RUNNING, handle=pipeline, stages=stages),
                make_snapshot(SUCCESS, handle=pipeline),
            ]
        )

        _orchestrator(client, renderer).watch(pipeline, context)

        first = renderer.payloads("transition")[0]
        assert [stage.name for stage in first.stages] == ["build", "test"]

    def test_follow_emits_log_lines(self, handle, context, renderer):
        client = FakeClient(
            statuses=[make_snapshot(RUNNING), make_snapshot(SUCCESS)],
            logs=["a\n", "a\nb\n"],
        )

        result = _orchestrator(client, renderer).follow(handle, context)

        assert renderer.payloads("log_line") == ["a", "b"]
        assert "transition" not in renderer.names()
        assert result.lines_emitted == 2

    def test_follow_watch_emits_lines_and_transitions(self, handle, context, renderer):
        client = FakeClient(
            statuses=[make_snapshot(RUNNING), make_snapshot(SUCCESS)],
            logs=["a\n", "a\nb\n"],
        )

        _orchestrator(client, renderer).run(handle, MonitorMode.FOLLOW_WATCH, context)

        assert renderer.names() == [
            "started",
            "transition",
            "log_line",
            "transition",
            "log_line",
            "completed",
        ]

    def test_follow_rejects_pipelines(self, context, renderer):
        with pytest.raises(InvalidArgumentError):
            _orchestrator(FakeClient(), renderer).follow(
                make_handle("pl-1", JobKind.PIPELINE), context
            )


# ---------------------------------------------------------------------------
# Test: early exits
# ---------------------------------------------------------------------------


class TestEarlyExits:
    def test_cancel_renders_interrupted(self, handle, context, renderer, token):
        token.request_cancel()
        result = _orchestrator(FakeClient(statuses=[make_snapshot(RUNNING)]), renderer).wait(
            handle, context
        )

        assert result.outcome is MonitorOutcome.CANCELLED
        assert renderer.names() == ["started", "interrupted"]

    def test_error_renders_failed_and_propagates(self, handle, context, renderer):
        client = FakeClient(statuses=[ApiError(404, "Not Found")])

        with pytest.raises(ApiError):
            _orchestrator(client, renderer).watch(handle, context)

        assert renderer.names() == ["started", "failed"]


# ---------------------------------------------------------------------------
# Test: trigger and rebuild
# ---------------------------------------------------------------------------


class TestTriggerAndWait:
    def test_trigger_and_wait_monitors_new_job(self, context, renderer, sleeper):
        client = FakeClient(statuses=[make_snapshot(RUNNING), make_snapshot(SUCCESS)])
        spec = TriggerSpec(app_slug="app-1", target="primary", branch="main")

        result = _orchestrator(client, renderer).trigger_and_wait(spec, context)

        assert client.triggered == [spec]
        assert result.handle.job_id == "new-job"
        assert renderer.names()[:2] == ["triggered", "started"]
        # A freshly triggered job gets one interval before the first fetch
        assert len(sleeper.sleeps) == 2

    def test_trigger_is_not_retried(self, renderer):
        class FailingTrigger(FakeClient):
            def trigger(self, spec):
                self.calls.append(("trigger", spec))
                raise ApiError(503, "unavailable")

        client = FailingTrigger()
        with pytest.raises(ApiError):
            _orchestrator(client, renderer).trigger(TriggerSpec(app_slug="a", target="w"))
        assert client.count("trigger") == 1

    def test_rebuild_and_wait(self, context, renderer):
        pipeline = make_handle("pl-1", JobKind.PIPELINE)
        client = FakeClient(statuses=[make_snapshot(SUCCESS, handle=pipeline)])

        result = _orchestrator(client, renderer).rebuild_and_wait(pipeline, context, partial=True)

        assert client.rebuilt == [(pipeline, True)]
        assert result.handle.job_id == "rebuilt-job"
        assert result.snapshot.status is SUCCESS

    def test_notifications_for_trigger_and_completion(self, context, renderer):
        sink = RecordingSink()
        client = FakeClient(statuses=[make_snapshot(FAILED)])

        _orchestrator(client, renderer, sink).trigger_and_wait(
            TriggerSpec(app_slug="app-1", target="primary"), context
        )

        assert [n.title for n in sink.sent] == ["Build Triggered", "Build Failed"]


# ---------------------------------------------------------------------------
# Test: retry and abort
# ---------------------------------------------------------------------------


class TestRetryAndAbort:
    def test_retry_reuses_workflow_branch_and_message(self, renderer):
        client = FakeClient()
        original = make_snapshot(FAILED, branch="release", commit_message="Bump version")

        new_handle = _orchestrator(client, renderer).retry(original)

        spec = client.triggered[0]
        assert (spec.target, spec.branch, spec.commit_message) == (
            "primary",
            "release",
            "Bump version",
        )
        assert spec.environments == {}
        assert new_handle.job_id == "new-job"
        assert renderer.names() == ["triggered"]

    def test_retry_and_wait_monitors_new_build(self, context, renderer):
        client = FakeClient(statuses=[make_snapshot(RUNNING), make_snapshot(SUCCESS)])

        result = _orchestrator(client, renderer).retry_and_wait(make_snapshot(FAILED), context)

        assert result.handle.job_id == "new-job"
        assert result.snapshot.status is SUCCESS
        assert renderer.names()[:2] == ["triggered", "started"]

    def test_pipelines_cannot_be_retried(self, renderer):
        pipeline = make_snapshot(FAILED, handle=make_handle("pl-1", JobKind.PIPELINE))
        client = FakeClient()

        with pytest.raises(InvalidArgumentError):
            _orchestrator(client, renderer).retry(pipeline)
        assert client.triggered == []

    def test_abort_running_job(self, renderer):
        client = FakeClient()
        running = make_snapshot(RUNNING)

        assert _orchestrator(client, renderer).abort(running, "Wrong branch") is True

        assert client.aborted == [(running.handle, "Wrong branch")]
        assert renderer.payloads("aborted") == ["Wrong branch"]

    def test_abort_finished_job_is_skipped(self, renderer):
        client = FakeClient()
        finished = make_snapshot(SUCCESS)

        assert _orchestrator(client, renderer).abort(finished) is False

        assert client.count("abort") == 0
        assert renderer.payloads("abort_skipped") == [finished]
