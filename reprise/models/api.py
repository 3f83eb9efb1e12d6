"""Bitrise API payload models.

Only the fields the monitor needs are declared; everything else in the
response is ignored.  Each payload knows how to become a ``JobSnapshot``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from reprise.models.jobs import (
    JobHandle,
    JobKind,
    JobSnapshot,
    JobStatus,
    StageSnapshot,
)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BuildPayload(_Payload):
    """``data`` object of ``GET /apps/{app}/builds/{slug}``."""

    slug: str
    status: int | None = None
    status_text: str = ""
    build_number: int | None = None
    branch: str | None = None
    commit_message: str | None = None
    triggered_workflow: str = ""
    triggered_at: datetime | None = None
    started_on_worker_at: datetime | None = None
    finished_at: datetime | None = None
    abort_reason: str | None = None

    def to_snapshot(self, app_slug: str) -> JobSnapshot:
        return JobSnapshot(
            handle=JobHandle(app_slug=app_slug, job_id=self.slug, kind=JobKind.BUILD),
            status=JobStatus.from_code(self.status),
            status_text=self.status_text,
            title=self.triggered_workflow,
            number=self.build_number,
            branch=self.branch,
            commit_message=self.commit_message,
            triggered_at=self.triggered_at,
            started_at=self.started_on_worker_at,
            finished_at=self.finished_at,
            abort_reason=self.abort_reason,
        )


class WorkflowPayload(_Payload):
    name: str = ""
    status: int | None = None
    status_text: str = ""


class PipelinePayload(_Payload):
    """Pipeline object, either bare or wrapped in ``data``."""

    id: str
    pipeline_id: str = ""
    status: int | None = None
    status_text: str = ""
    branch: str | None = None
    triggered_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    abort_reason: str | None = None
    workflows: list[WorkflowPayload] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        if isinstance(value.get("data"), dict):
            value = value["data"]
        if not value.get("branch"):
            # Older responses only carry the branch inside trigger_params
            params = value.get("trigger_params") or {}
            if isinstance(params, dict) and params.get("branch"):
                value = {**value, "branch": params["branch"]}
        return value

    def to_snapshot(self, app_slug: str) -> JobSnapshot:
        return JobSnapshot(
            handle=JobHandle(app_slug=app_slug, job_id=self.id, kind=JobKind.PIPELINE),
            status=JobStatus.from_code(self.status),
            status_text=self.status_text,
            title=self.pipeline_id,
            branch=self.branch,
            triggered_at=self.triggered_at,
            started_at=self.started_at,
            finished_at=self.finished_at,
            abort_reason=self.abort_reason,
            stages=[
                StageSnapshot(
                    name=wf.name,
                    status=JobStatus.from_code(wf.status),
                    status_text=wf.status_text,
                )
                for wf in self.workflows
            ],
        )


class LogChunk(_Payload):
    chunk: str = ""
    position: int = 0


class LogPayload(_Payload):
    """Response of ``GET /apps/{app}/builds/{slug}/log``."""

    log_chunks: list[LogChunk] = Field(default_factory=list)
    expiring_raw_log_url: str | None = None
    is_archived: bool = False

    def joined_chunks(self) -> str:
        return "".join(c.chunk for c in sorted(self.log_chunks, key=lambda c: c.position))
