"""Unit tests for job and monitoring models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import make_handle, make_snapshot
from reprise.models.api import BuildPayload, LogPayload, PipelinePayload
from reprise.errors import InvalidArgumentError
from reprise.models.jobs import JobHandle, JobKind, JobStatus, TriggerSpec
from reprise.models.monitor import PollContext, TailState


# ---------------------------------------------------------------------------
# Test: JobStatus
# ---------------------------------------------------------------------------


class TestJobStatus:
    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (0, JobStatus.RUNNING),
            (1, JobStatus.SUCCESS),
            (2, JobStatus.FAILED),
            (3, JobStatus.ABORTED),
            (4, JobStatus.ABORTED),
            (7, JobStatus.UNKNOWN),
            (None, JobStatus.UNKNOWN),
        ],
    )
    def test_from_code(self, code, status):
        assert JobStatus.from_code(code) is status

    def test_only_running_is_not_terminal(self):
        terminal = {s for s in JobStatus if s.is_terminal}
        assert terminal == set(JobStatus) - {JobStatus.RUNNING}


# ---------------------------------------------------------------------------
# Test: JobHandle and JobSnapshot
# ---------------------------------------------------------------------------


class TestJobHandle:
    def test_is_immutable(self):
        handle = make_handle()
        with pytest.raises(ValidationError):
            handle.job_id = "other"

    def test_web_urls(self):
        assert make_handle("b1").web_url() == "https://app.bitrise.io/build/b1"
        assert (
            make_handle("p1", JobKind.PIPELINE).web_url("https://example.test/")
            == "https://example.test/app/app-1/pipelines/p1"
        )

    def test_str_names_job_and_app(self):
        assert str(make_handle("b1")) == "build b1 (app app-1)"


class TestJobSnapshot:
    def test_capability_interface(self):
        running = make_snapshot(JobStatus.RUNNING, number=None)
        assert running.is_terminal() is False
        assert running.status_label() == "running"

        labelled = running.model_copy(update={"status_text": "in-progress"})
        assert labelled.status_label() == "in-progress"

    @pytest.mark.parametrize(
        ("seconds", "text"),
        [(42, "42s"), (185, "3m 5s"), (4320, "1h 12m"), (None, "-")],
    )
    def test_duration_display(self, seconds, text):
        assert make_snapshot(JobStatus.SUCCESS, duration_s=seconds).duration_display() == text

    def test_display_name(self):
        assert make_snapshot(number=9).display_name == "Build #9"
        pipeline = make_snapshot(handle=make_handle("p1", JobKind.PIPELINE), number=None)
        assert pipeline.display_name == "Pipeline primary"


class TestRetrySpec:
    def test_copies_workflow_branch_and_message(self):
        snapshot = make_snapshot(JobStatus.FAILED, branch="dev", commit_message="Fix flaky test")

        spec = TriggerSpec.retry_of(snapshot)

        assert spec == TriggerSpec(
            app_slug="app-1", target="primary", branch="dev", commit_message="Fix flaky test"
        )

    def test_pipeline_rejected(self):
        snapshot = make_snapshot(handle=make_handle("pl-1", JobKind.PIPELINE))
        with pytest.raises(InvalidArgumentError, match="pipeline rebuild"):
            TriggerSpec.retry_of(snapshot)

    def test_build_without_workflow_rejected(self):
        snapshot = make_snapshot().model_copy(update={"title": ""})
        with pytest.raises(InvalidArgumentError):
            TriggerSpec.retry_of(snapshot)


# ---------------------------------------------------------------------------
# Test: monitoring models
# ---------------------------------------------------------------------------


class TestPollContext:
    def test_rejects_negative_interval(self):
        with pytest.raises(ValidationError):
            PollContext(interval=-1)

    def test_rejects_negative_retries(self):
        with pytest.raises(ValidationError):
            PollContext(max_retries=-1)

    def test_is_frozen(self):
        with pytest.raises(ValidationError):
            PollContext().interval = 1.0

    def test_sleep_uses_injected_sleeper(self):
        slept = []
        PollContext(interval=4.0, sleeper=slept.append).sleep()
        assert slept == [4.0]

    def test_default_sleep_returns_at_once_when_cancelled(self):
        context = PollContext(interval=3600.0)
        context.token.request_cancel()
        context.sleep()  # would hang for an hour otherwise


class TestTailState:
    def test_never_decreases(self):
        state = TailState(handle=make_handle())
        assert state.new_lines(["a", "b"]) == ["a", "b"]
        assert state.new_lines(["a"]) == []
        assert state.line_count == 2
        assert state.new_lines(["a", "b", "c"]) == ["c"]


# ---------------------------------------------------------------------------
# Test: API payloads
# ---------------------------------------------------------------------------


class TestPayloads:
    def test_build_payload_to_snapshot(self):
        payload = BuildPayload.model_validate(
            {
                "slug": "b1",
                "status": 3,
                "status_text": "aborted",
                "build_number": 12,
                "branch": "main",
                "triggered_workflow": "primary",
                "started_on_worker_at": "2026-03-01T12:00:00Z",
                "finished_at": "2026-03-01T12:01:30Z",
                "abort_reason": "Timed out",
                "unexpected": {"ignored": True},
            }
        )
        snapshot = payload.to_snapshot("app-1")
        assert snapshot.handle == JobHandle(app_slug="app-1", job_id="b1")
        assert snapshot.status is JobStatus.ABORTED
        assert snapshot.duration_display() == "1m 30s"
        assert snapshot.abort_reason == "Timed out"

    def test_pipeline_payload_unwraps_data_and_trigger_branch(self):
        payload = PipelinePayload.model_validate(
            {
                "data": {
                    "id": "p1",
                    "pipeline_id": "ci",
                    "status": 0,
                    "trigger_params": {"branch": "feature"},
                    "workflows": [{"name": "build", "status": 1}, {"name": "test", "status": 0}],
                }
            }
        )
        snapshot = payload.to_snapshot("app-1")
        assert snapshot.kind is JobKind.PIPELINE
        assert snapshot.branch == "feature"
        assert [(s.name, s.status) for s in snapshot.stages] == [
            ("build", JobStatus.SUCCESS),
            ("test", JobStatus.RUNNING),
        ]

    def test_log_chunks_joined_in_position_order(self):
        payload = LogPayload.model_validate(
            {"log_chunks": [{"chunk": "b\n", "position": 1}, {"chunk": "a\n", "position": 0}]}
        )
        assert payload.joined_chunks() == "a\nb\n"
