"""JobStatusPoller — poll a job's status until it reaches a terminal state.

Loop, once per ``context.interval``:

1. Return a CANCELLED result if the token is set.
2. Sleep for the interval (before the first fetch too, so a freshly
   triggered job has time to register remotely).
3. Fetch a fresh ``JobSnapshot`` through ``RetryPolicy``.
4. Call ``on_transition`` if the status changed (or on the first snapshot).
5. On a terminal status, notify once and return the snapshot.

Cancellation is not preemptive: a fetch in flight, including its retry
backoff, always completes before the flag is observed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from reprise.core.retry import RetryPolicy
from reprise.models.jobs import JobHandle, JobSnapshot
from reprise.models.monitor import MonitorOutcome, MonitorResult, PollContext

if TYPE_CHECKING:
    from reprise.bridge.client import RemoteJobClient
    from reprise.notify.notifier import CompletionNotifier

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[JobSnapshot], None]


class JobStatusPoller:
    """Repeatedly fetch a job snapshot until the job stops running.

    Parameters
    ----------
    client:
        Remote API client used for status fetches.
    notifier:
        Completion notifier, invoked exactly once on a terminal snapshot.
    retry_policy:
        Policy wrapping each status fetch.  Built from
        ``context.max_retries`` when not provided.
    """

    def __init__(
        self,
        client: RemoteJobClient,
        *,
        notifier: CompletionNotifier | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._notifier = notifier
        self._retry_policy = retry_policy

    def poll_until_terminal(
        self,
        handle: JobHandle,
        context: PollContext,
        on_transition: SnapshotCallback | None = None,
        *,
        on_poll: SnapshotCallback | None = None,
        delay_first_poll: bool = True,
    ) -> MonitorResult:
        """Poll *handle* until terminal or cancelled.

        Parameters
        ----------
        on_transition:
            Called with each snapshot whose status differs from the
            previous one.  The poller's only rendering hook.
        on_poll:
            Called with every non-terminal snapshot (progress heartbeat).
        delay_first_poll:
            When ``False`` the first fetch happens immediately; later
            fetches are always one interval apart.
        """
        policy = self._retry_policy or RetryPolicy(context.max_retries)
        last: JobSnapshot | None = None
        polls = 0

        while True:
            if context.token.is_cancelled():
                logger.info("Polling of %s cancelled after %d polls", handle, polls)
                return MonitorResult(
                    handle=handle, outcome=MonitorOutcome.CANCELLED, snapshot=last
                )

            if polls > 0 or delay_first_poll:
                context.sleep()
                if context.token.is_cancelled():
                    continue

            snapshot = policy.call(
                lambda: self._client.get_status(handle),
                description=f"status fetch for {handle}",
            )
            polls += 1
            logger.debug("Poll %d of %s: %s", polls, handle, snapshot.status.value)

            if last is None or snapshot.status is not last.status:
                if on_transition is not None:
                    on_transition(snapshot)
            last = snapshot

            if snapshot.is_terminal():
                if self._notifier is not None:
                    self._notifier.notify(snapshot)
                return MonitorResult(
                    handle=handle, outcome=MonitorOutcome.COMPLETED, snapshot=snapshot
                )

            if on_poll is not None:
                on_poll(snapshot)
