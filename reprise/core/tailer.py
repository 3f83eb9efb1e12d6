"""LogTailer — surface only the newly appended lines of a job's log.

The remote API has no offset or incremental fetch, so every iteration
re-reads the *entire* log and computes the delta locally against the
``TailState`` line count.

Loop:

1. Return a CANCELLED result if the token is set.
2. Fetch the job status (not retried; a failure keeps the last known
   running/terminal verdict).
3. Fetch the full log.  A failure while the job runs means "not yet
   available": sleep and try again.  A failure once the job is terminal
   raises ``LogNotAvailableError``.
4. Emit every complete line past the recorded count.  A log that shrank
   emits nothing and leaves the count alone.  While the job runs, a last
   line without its newline is held back until it is finished.
5. On a terminal status, notify once and return.
6. Otherwise sleep and repeat.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from reprise.errors import LogNotAvailableError, RepriseError
from reprise.models.jobs import JobHandle, JobSnapshot
from reprise.models.monitor import (
    MonitorOutcome,
    MonitorResult,
    PollContext,
    TailState,
)

if TYPE_CHECKING:
    from reprise.bridge.client import RemoteJobClient
    from reprise.notify.notifier import CompletionNotifier

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], None]
SnapshotCallback = Callable[[JobSnapshot], None]


def split_log_lines(content: str, *, final: bool = True) -> list[str]:
    """Split a log into lines on ``\\n`` only, dropping one trailing ``\\r`` per line.

    With ``final=False`` an unterminated last line is left out.
    """
    lines = content.split("\n")
    rest = lines.pop()
    if rest and final:
        lines.append(rest)
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class LogTailer:
    """Follow a job's log until the job finishes.

    Parameters
    ----------
    client:
        Remote API client used for status and log fetches.
    notifier:
        Completion notifier, invoked exactly once when the job is terminal.
    """

    def __init__(
        self,
        client: RemoteJobClient,
        *,
        notifier: CompletionNotifier | None = None,
    ) -> None:
        self._client = client
        self._notifier = notifier

    def tail(
        self,
        handle: JobHandle,
        context: PollContext,
        on_new_line: LineCallback,
        *,
        on_transition: SnapshotCallback | None = None,
        state: TailState | None = None,
    ) -> MonitorResult:
        """Tail the log of *handle*, calling *on_new_line* for each new line.

        Parameters
        ----------
        on_transition:
            Optional status-change hook, for combined follow-and-watch.
        state:
            Start from an existing line count (e.g. after printing the
            last N lines of the log).  A fresh state is used otherwise.
        """
        tail_state = state or TailState(handle=handle)
        last: JobSnapshot | None = None
        running = True

        while True:
            if context.token.is_cancelled():
                logger.info("Tailing of %s cancelled", handle)
                return self._result(handle, MonitorOutcome.CANCELLED, last, tail_state)

            try:
                snapshot = self._client.get_status(handle)
            except RepriseError as exc:
                logger.debug("Status fetch for %s failed, keeping last verdict: %s", handle, exc)
            else:
                if on_transition is not None and (
                    last is None or snapshot.status is not last.status
                ):
                    on_transition(snapshot)
                last = snapshot
                running = not snapshot.is_terminal()

            try:
                content = self._client.get_log(handle)
            except RepriseError as exc:
                if running:
                    logger.debug("Log for %s not available yet: %s", handle, exc)
                    context.sleep()
                    continue
                raise LogNotAvailableError(
                    f"Log for {handle} is not available: {exc}"
                ) from exc

            fresh = tail_state.new_lines(split_log_lines(content, final=not running))
            if fresh:
                logger.debug("%d new log lines for %s", len(fresh), handle)
            for line in fresh:
                on_new_line(line)

            if not running:
                if self._notifier is not None and last is not None:
                    self._notifier.notify(last)
                return self._result(handle, MonitorOutcome.COMPLETED, last, tail_state)

            context.sleep()

    @staticmethod
    def _result(
        handle: JobHandle,
        outcome: MonitorOutcome,
        snapshot: JobSnapshot | None,
        state: TailState,
    ) -> MonitorResult:
        return MonitorResult(
            handle=handle,
            outcome=outcome,
            snapshot=snapshot,
            lines_emitted=state.line_count,
        )
