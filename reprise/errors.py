"""Reprise exception hierarchy.

Every error raised on purpose derives from ``RepriseError`` and carries the
process exit code the CLI uses when the error reaches the top level.
Codes follow sysexits.h where one applies.
"""

from __future__ import annotations


class RepriseError(RuntimeError):
    """Base class for all Reprise errors."""

    @property
    def exit_code(self) -> int:
        return 1


class ConfigError(RepriseError):
    """Missing or invalid configuration."""

    @property
    def exit_code(self) -> int:
        return 78  # EX_CONFIG


class InvalidArgumentError(RepriseError):
    """A user-supplied argument cannot be used."""

    @property
    def exit_code(self) -> int:
        return 2


class ApiError(RepriseError):
    """The remote API answered with a non-success HTTP status."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = status
        self.message = message
        super().__init__(f"Bitrise API error (HTTP {status}): {message}")

    @property
    def is_transient(self) -> bool:
        """Server-side failures are worth retrying; everything else is not."""
        return self.status >= 500

    @property
    def exit_code(self) -> int:
        if self.status in (401, 403):
            return 77  # EX_NOPERM
        if self.status == 404:
            return 66  # EX_NOINPUT
        return 69  # EX_UNAVAILABLE


class TransportError(RepriseError):
    """The HTTP request itself failed (DNS, connect, timeout, ...)."""

    @property
    def exit_code(self) -> int:
        return 69


class UnsafeUrlError(RepriseError):
    """A server-supplied URL points outside the allowed hosts."""

    @property
    def exit_code(self) -> int:
        return 2


class JobNotFoundError(RepriseError):
    """No accessible app owns the requested job."""

    @property
    def exit_code(self) -> int:
        return 66


class LogNotAvailableError(RepriseError):
    """The job's log cannot be fetched and never will be."""

    @property
    def exit_code(self) -> int:
        return 66


class NotificationError(RepriseError):
    """A notification sink failed to deliver.  Never escapes the notifier."""


class ResponseFormatError(RepriseError):
    """The API answered 2xx with a body we cannot parse."""

    @property
    def exit_code(self) -> int:
        return 65  # EX_DATAERR
