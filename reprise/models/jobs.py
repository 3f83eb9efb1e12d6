"""Job models — handles, statuses and point-in-time snapshots."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from reprise.errors import InvalidArgumentError


class JobKind(str, Enum):
    """The two kinds of remote job the monitor understands."""

    BUILD = "build"
    PIPELINE = "pipeline"


class JobStatus(str, Enum):
    """Closed set of job states.  RUNNING is the only non-terminal value."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    ABORTED = "aborted"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: int | None) -> JobStatus:
        """Map a Bitrise numeric status code onto a JobStatus.

        4 is "aborted with success", which is still an abort.
        """
        return _STATUS_CODES.get(code, cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        # UNKNOWN counts as terminal everywhere
        return self is not JobStatus.RUNNING


_STATUS_CODES: dict[int | None, JobStatus] = {
    0: JobStatus.RUNNING,
    1: JobStatus.SUCCESS,
    2: JobStatus.FAILED,
    3: JobStatus.ABORTED,
    4: JobStatus.ABORTED,
}


class JobHandle(BaseModel):
    """Immutable address of a remote job: owning app slug plus job id."""

    model_config = ConfigDict(frozen=True)

    app_slug: str
    job_id: str
    kind: JobKind = JobKind.BUILD

    def __str__(self) -> str:
        return f"{self.kind.value} {self.job_id} (app {self.app_slug})"

    def web_url(self, web_base_url: str = "https://app.bitrise.io") -> str:
        """Return the browser URL where the job can be inspected."""
        base = web_base_url.rstrip("/")
        if self.kind is JobKind.PIPELINE:
            return f"{base}/app/{self.app_slug}/pipelines/{self.job_id}"
        return f"{base}/build/{self.job_id}"


class StageSnapshot(BaseModel):
    """Status of one sub-stage (a workflow inside a pipeline)."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: JobStatus = JobStatus.UNKNOWN
    status_text: str = ""


class JobSnapshot(BaseModel):
    """Last-observed state of a job.

    Produced fresh on every poll and never mutated; each poll's snapshot
    supersedes the previous one for comparison purposes.
    """

    model_config = ConfigDict(frozen=True)

    handle: JobHandle
    status: JobStatus
    status_text: str = ""
    title: str = ""
    number: int | None = None
    branch: str | None = None
    commit_message: str | None = None
    triggered_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    abort_reason: str | None = None
    stages: list[StageSnapshot] = Field(default_factory=list)

    # Capability interface shared by builds and pipelines

    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def status_label(self) -> str:
        """Human status label, preferring the server's own wording."""
        return self.status_text or self.status.value

    @property
    def kind(self) -> JobKind:
        return self.handle.kind

    @property
    def display_name(self) -> str:
        """Short name used in headings and notifications."""
        if self.kind is JobKind.BUILD and self.number is not None:
            return f"Build #{self.number}"
        if self.title:
            return f"{self.kind.value.title()} {self.title}"
        return f"{self.kind.value.title()} {self.handle.job_id}"

    @property
    def duration(self) -> timedelta | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return self.finished_at - self.started_at

    def duration_display(self) -> str:
        """Format the run time as ``42s``, ``3m 5s`` or ``1h 12m``."""
        duration = self.duration
        if duration is None:
            return "-"
        secs = int(duration.total_seconds())
        if secs < 60:
            return f"{secs}s"
        if secs < 3600:
            return f"{secs // 60}m {secs % 60}s"
        return f"{secs // 3600}h {(secs % 3600) // 60}m"


class TriggerSpec(BaseModel):
    """Parameters for starting a new build or pipeline."""

    model_config = ConfigDict(frozen=True)

    app_slug: str
    kind: JobKind = JobKind.BUILD
    target: str  # workflow id for builds, pipeline id for pipelines
    branch: str | None = None
    commit_message: str | None = None
    environments: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def retry_of(cls, snapshot: JobSnapshot) -> TriggerSpec:
        """Spec for a new build with the workflow, branch and message of *snapshot*."""
        if snapshot.kind is not JobKind.BUILD:
            raise InvalidArgumentError(
                "Only builds can be retried; use 'pipeline rebuild' for pipelines"
            )
        if not snapshot.title:
            raise InvalidArgumentError(
                f"{snapshot.display_name} has no workflow to re-run"
            )
        return cls(
            app_slug=snapshot.handle.app_slug,
            target=snapshot.title,
            branch=snapshot.branch,
            commit_message=snapshot.commit_message,
        )
