"""CompletionNotifier — one best-effort notification per monitor run.

Maps a terminal ``JobSnapshot`` to a title/body pair and fans it out to
every registered sink.  A sink failure is logged and never propagated:
notification is observability, not part of the monitor's result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reprise.models.jobs import JobHandle, JobSnapshot, JobStatus
from reprise.notify import Notification

if TYPE_CHECKING:
    from reprise.notify import NotificationSink

logger = logging.getLogger(__name__)

# status -> (title suffix, body phrase, icon)
_OUTCOME_TEXT: dict[JobStatus, tuple[str, str, str]] = {
    JobStatus.SUCCESS: ("Succeeded", "completed successfully", "dialog-positive"),
    JobStatus.FAILED: ("Failed", "failed", "dialog-error"),
    JobStatus.ABORTED: ("Aborted", "was aborted", "dialog-warning"),
}
_GENERIC_OUTCOME = ("Finished", "finished", "dialog-information")


def build_completion_notification(snapshot: JobSnapshot) -> Notification:
    """Build the notification shown when *snapshot*'s job finishes."""
    title_suffix, phrase, icon = _OUTCOME_TEXT.get(snapshot.status, _GENERIC_OUTCOME)
    kind = snapshot.kind.value.title()

    title = f"{kind} {title_suffix}"

    body_lines = [f"{snapshot.display_name} {phrase}"]
    if snapshot.branch:
        body_lines.append(f"Branch: {snapshot.branch}")
    if snapshot.duration is not None:
        body_lines.append(f"Duration: {snapshot.duration_display()}")
    if snapshot.abort_reason:
        body_lines.append(f"Reason: {snapshot.abort_reason}")

    return Notification(title=title, body="\n".join(body_lines), icon=icon)


class CompletionNotifier:
    """Sends the completion notification for one monitoring invocation.

    Parameters
    ----------
    sinks:
        Delivery targets.  Every sink is tried even if an earlier one fails.
    """

    def __init__(self, sinks: list[NotificationSink] | None = None) -> None:
        self._sinks: list[NotificationSink] = list(sinks or [])
        self._fired = False

    @property
    def fired(self) -> bool:
        """Whether the completion notification has already been sent."""
        return self._fired

    def notify(self, snapshot: JobSnapshot) -> None:
        """Send the completion notification for *snapshot*, at most once."""
        if self._fired:
            logger.debug("Completion notification already sent; ignoring %s", snapshot.handle)
            return
        self._fired = True
        self._dispatch(build_completion_notification(snapshot))

    def notify_triggered(self, handle: JobHandle) -> None:
        """Announce that a new job was started.  Does not count as completion."""
        kind = handle.kind.value.title()
        self._dispatch(
            Notification(
                title=f"{kind} Triggered",
                body=f"{kind} {handle.job_id} started",
                icon="media-playback-start",
                timeout_ms=3000,
            )
        )

    def _dispatch(self, notification: Notification) -> None:
        delivered = 0
        for sink in self._sinks:
            try:
                sink.send(notification)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Notification sink %s failed for %r: %s",
                    sink.sink_name,
                    notification.title,
                    exc,
                )
        logger.debug(
            "Notification %r delivered to %d of %d sinks",
            notification.title,
            delivered,
            len(self._sinks),
        )
