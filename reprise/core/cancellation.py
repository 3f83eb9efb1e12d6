"""Cooperative cancellation driven by the interrupt signal (Ctrl+C).

A ``CancellationToken`` is created once per monitoring command and passed
explicitly into every loop.  The SIGINT handler only ever touches the
token it was installed with.  Loops check the flag once per iteration and
return gracefully; nothing is killed preemptively, and the remote job is
never aborted.

Only the first handler installed in a process is honored.  Later calls to
``install_interrupt_handler`` are ignored without replacing it, so call
sites share one token per process invocation.
"""

from __future__ import annotations

import logging
import signal
import threading

logger = logging.getLogger(__name__)

_install_lock = threading.Lock()
_installed_token: CancellationToken | None = None


class CancellationToken:
    """A set-once flag read by every monitoring loop.

    Backed by ``threading.Event`` so the signal handler can set it and the
    poll loop's interval wait wakes up immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def request_cancel(self) -> None:
        """Set the flag.  Idempotent."""
        if not self._event.is_set():
            logger.debug("Cancellation requested")
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds, returning early if cancelled.

        Returns ``True`` when the token is cancelled.
        """
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled()})"


def install_interrupt_handler(token: CancellationToken) -> bool:
    """Route SIGINT to *token*.

    Returns ``True`` if this call installed the handler.  If a handler is
    already installed, or signals cannot be installed from the current
    thread, the call is ignored and returns ``False``; the caller's token
    still works when cancelled directly.
    """
    global _installed_token

    with _install_lock:
        if _installed_token is not None:
            logger.debug("Interrupt handler already installed; ignoring")
            return False

        def _handler(signum: int, frame: object) -> None:
            token.request_cancel()

        try:
            signal.signal(signal.SIGINT, _handler)
        except ValueError:
            # signal.signal only works in the main thread
            logger.debug("Cannot install interrupt handler outside the main thread")
            return False

        _installed_token = token
        return True


def installed_token() -> CancellationToken | None:
    """Return the token the process-wide handler toggles, if any."""
    return _installed_token
