"""Notification sink protocol and payload model.

All sinks implement the ``NotificationSink`` protocol: a ``sink_name``
property and a ``send(notification)`` method.  ``CompletionNotifier``
calls ``send`` on every registered sink.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class Notification(BaseModel):
    """A title/body pair destined for the user's desktop."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str
    icon: str = "dialog-information"
    timeout_ms: int = 5000


@runtime_checkable
class NotificationSink(Protocol):
    """Protocol that every notification target must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier (e.g. ``"desktop"``).
    """

    @property
    def sink_name(self) -> str:
        """Return the unique name of this sink."""
        ...

    def send(self, notification: Notification) -> None:
        """Deliver *notification*.

        Implementations may raise on failure; the notifier logs the
        failure and carries on.
        """
        ...
