"""Reprise data models (pydantic v2)."""

from reprise.models.jobs import (
    JobHandle,
    JobKind,
    JobSnapshot,
    JobStatus,
    StageSnapshot,
    TriggerSpec,
)
from reprise.models.monitor import (
    MonitorMode,
    MonitorOutcome,
    MonitorResult,
    PollContext,
    RetryState,
    TailState,
)

__all__ = [
    "JobHandle",
    "JobKind",
    "JobSnapshot",
    "JobStatus",
    "StageSnapshot",
    "TriggerSpec",
    "MonitorMode",
    "MonitorOutcome",
    "MonitorResult",
    "PollContext",
    "RetryState",
    "TailState",
]
