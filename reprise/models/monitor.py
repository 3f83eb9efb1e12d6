"""Monitoring models — poll configuration, outcomes and loop state."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reprise.core.cancellation import CancellationToken
from reprise.models.jobs import JobHandle, JobSnapshot

Sleeper = Callable[[float], None]


class MonitorMode(str, Enum):
    """The observable ways a command can monitor a job."""

    WAIT = "wait"
    FOLLOW = "follow"
    WATCH = "watch"
    FOLLOW_WATCH = "follow_watch"


class MonitorOutcome(str, Enum):
    """How a monitoring loop ended.  CANCELLED is the monitor's exit, not the job's."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PollContext(BaseModel):
    """Configuration bundle for one monitoring invocation.

    Constructed once and passed by reference.  The only thing that changes
    afterwards is the state of the referenced token.

    Parameters
    ----------
    interval:
        Seconds between polls.
    max_retries:
        Additional attempts RetryPolicy grants a transient failure.
    token:
        Cancellation flag shared with the interrupt handler.
    sleeper:
        Blocking wait between polls.  Defaults to a wait on the token, so
        a cancellation wakes the loop before the next remote call.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    interval: float = 10.0
    max_retries: int = 5
    token: CancellationToken = Field(default_factory=CancellationToken)
    sleeper: Sleeper | None = None

    @field_validator("interval")
    @classmethod
    def _interval_positive(cls, value: float) -> float:
        if value < 0:
            raise ValueError("interval must not be negative")
        return value

    @field_validator("max_retries")
    @classmethod
    def _retries_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_retries must not be negative")
        return value

    def sleep(self, seconds: float | None = None) -> None:
        """Block for *seconds* (default: the poll interval)."""
        duration = self.interval if seconds is None else seconds
        if self.sleeper is not None:
            self.sleeper(duration)
        else:
            self.token.wait(duration)


class MonitorResult(BaseModel):
    """What a monitoring loop hands back to its caller."""

    model_config = ConfigDict(frozen=True)

    handle: JobHandle
    outcome: MonitorOutcome
    snapshot: JobSnapshot | None = None
    lines_emitted: int = 0

    @property
    def cancelled(self) -> bool:
        return self.outcome is MonitorOutcome.CANCELLED


class TailState(BaseModel):
    """Number of log lines already emitted for one job.

    Owned by a single LogTailer run; never decreases.
    """

    handle: JobHandle
    line_count: int = 0

    def new_lines(self, lines: list[str]) -> list[str]:
        """Return the lines past the recorded count and advance it.

        A log that shrank yields nothing and leaves the count alone.
        """
        if len(lines) <= self.line_count:
            return []
        fresh = lines[self.line_count:]
        self.line_count = len(lines)
        return fresh


class RetryState(BaseModel):
    """Attempt counter for one logical remote operation."""

    attempt: int = 0
    base_delay: float = 1.0

    def next_backoff(self) -> float:
        """Advance to the next attempt and return its delay: 1, 2, 4, 8, ..."""
        self.attempt += 1
        return self.base_delay * (2 ** (self.attempt - 1))
