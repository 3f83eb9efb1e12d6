"""MonitorOrchestrator — one engine behind every --wait, --follow and --watch.

Composes ``JobStatusPoller``, ``LogTailer`` and ``CompletionNotifier``
into the observable monitoring modes:

- ``WAIT``         : poll status only, block until terminal, then show the
                     final summary (duration, abort reason).
- ``FOLLOW``       : tail the log only, until terminal.
- ``WATCH``        : poll status, rendering every status transition.
- ``FOLLOW_WATCH`` : tail the log and render status transitions.

Trigger-and-wait, rebuild-and-wait and retry-and-wait start a new job
through the client and hand the resulting handle straight to ``WAIT``.
Abort stops a running job; a job that already finished is left alone.

Every run pushes its events to an ``OutputSink``.  A cancelled run is
reported as ``interrupted``; a failed run is reported as ``failed`` (so
the user can still locate the job) and the error is re-raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reprise.core.poller import JobStatusPoller
from reprise.core.retry import RetryPolicy
from reprise.core.tailer import LogTailer
from reprise.errors import InvalidArgumentError, RepriseError
from reprise.models.jobs import JobHandle, JobKind, JobSnapshot, TriggerSpec
from reprise.models.monitor import MonitorMode, MonitorResult, PollContext, TailState

if TYPE_CHECKING:
    from reprise.bridge.client import RemoteJobClient
    from reprise.monitor.renderer import OutputSink
    from reprise.notify.notifier import CompletionNotifier

logger = logging.getLogger(__name__)


class MonitorOrchestrator:
    """Drive one monitoring invocation.

    Parameters
    ----------
    client:
        Remote API client.
    renderer:
        Receiver of every monitoring event.
    notifier:
        Optional completion notifier.  Present only when the user asked
        for notifications.
    retry_policy:
        Policy for status fetches.  Built from the context when omitted.
    """

    def __init__(
        self,
        client: RemoteJobClient,
        renderer: OutputSink,
        *,
        notifier: CompletionNotifier | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._renderer = renderer
        self._notifier = notifier
        self._poller = JobStatusPoller(client, notifier=notifier, retry_policy=retry_policy)
        self._tailer = LogTailer(client, notifier=notifier)

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def run(
        self,
        handle: JobHandle,
        mode: MonitorMode,
        context: PollContext,
        *,
        tail_state: TailState | None = None,
        delay_first_poll: bool = True,
    ) -> MonitorResult:
        """Monitor *handle* in *mode* until terminal or cancelled.

        Parameters
        ----------
        tail_state:
            Log lines already printed by the caller (``log --tail``).
        delay_first_poll:
            Whether ``WAIT`` sleeps before its first status fetch.  True
            for freshly triggered jobs.
        """
        if mode in (MonitorMode.FOLLOW, MonitorMode.FOLLOW_WATCH) and (
            handle.kind is not JobKind.BUILD
        ):
            raise InvalidArgumentError("--follow is only supported for builds")

        logger.info("Monitoring %s in %s mode", handle, mode.value)
        self._renderer.started(handle, mode)
        try:
            result = self._dispatch(handle, mode, context, tail_state, delay_first_poll)
        except RepriseError as exc:
            logger.info("Monitoring %s failed: %s", handle, exc)
            self._renderer.failed(handle, exc)
            raise

        if result.cancelled:
            self._renderer.interrupted(handle)
        elif result.snapshot is not None:
            self._renderer.completed(result.snapshot)
        return result

    def _dispatch(
        self,
        handle: JobHandle,
        mode: MonitorMode,
        context: PollContext,
        tail_state: TailState | None,
        delay_first_poll: bool,
    ) -> MonitorResult:
        renderer = self._renderer
        if mode is MonitorMode.WAIT:
            return self._poller.poll_until_terminal(
                handle,
                context,
                on_poll=renderer.heartbeat,
                delay_first_poll=delay_first_poll,
            )
        if mode is MonitorMode.WATCH:
            return self._poller.poll_until_terminal(
                handle,
                context,
                renderer.transition,
                delay_first_poll=False,
            )
        if mode is MonitorMode.FOLLOW:
            return self._tailer.tail(handle, context, renderer.log_line, state=tail_state)
        return self._tailer.tail(
            handle,
            context,
            renderer.log_line,
            on_transition=renderer.transition,
            state=tail_state,
        )

    def wait(self, handle: JobHandle, context: PollContext) -> MonitorResult:
        return self.run(handle, MonitorMode.WAIT, context)

    def follow(
        self, handle: JobHandle, context: PollContext, tail_state: TailState | None = None
    ) -> MonitorResult:
        return self.run(handle, MonitorMode.FOLLOW, context, tail_state=tail_state)

    def watch(self, handle: JobHandle, context: PollContext) -> MonitorResult:
        return self.run(handle, MonitorMode.WATCH, context)

    # ------------------------------------------------------------------
    # Start a job, then wait for it
    # ------------------------------------------------------------------

    def trigger(self, spec: TriggerSpec) -> JobHandle:
        """Start a new job (not retried) and announce it."""
        handle = self._client.trigger(spec)
        self._announce(handle)
        return handle

    def rebuild(self, handle: JobHandle, partial: bool = False) -> JobHandle:
        """Rebuild a pipeline (not retried) and announce the new run."""
        new_handle = self._client.rebuild(handle, partial=partial)
        self._announce(new_handle)
        return new_handle

    def trigger_and_wait(self, spec: TriggerSpec, context: PollContext) -> MonitorResult:
        return self.wait(self.trigger(spec), context)

    def rebuild_and_wait(
        self, handle: JobHandle, context: PollContext, partial: bool = False
    ) -> MonitorResult:
        return self.wait(self.rebuild(handle, partial=partial), context)

    def retry(self, snapshot: JobSnapshot) -> JobHandle:
        """Start a new build with the workflow, branch and message of *snapshot*."""
        return self.trigger(TriggerSpec.retry_of(snapshot))

    def retry_and_wait(self, snapshot: JobSnapshot, context: PollContext) -> MonitorResult:
        return self.trigger_and_wait(TriggerSpec.retry_of(snapshot), context)

    # ------------------------------------------------------------------
    # Stop a job
    # ------------------------------------------------------------------

    def abort(self, snapshot: JobSnapshot, reason: str | None = None) -> bool:
        """Abort the job behind *snapshot* if it is still running.

        Returns ``False`` without calling the API when the job already
        finished.  Not retried.
        """
        if snapshot.is_terminal():
            logger.info("Not aborting %s: status is %s", snapshot.handle, snapshot.status.value)
            self._renderer.abort_skipped(snapshot)
            return False
        self._client.abort(snapshot.handle, reason)
        self._renderer.aborted(snapshot, reason)
        return True

    def _announce(self, handle: JobHandle) -> None:
        self._renderer.triggered(handle)
        if self._notifier is not None:
            self._notifier.notify_triggered(handle)
