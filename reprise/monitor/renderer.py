"""Renderers for monitoring events.

The engine pushes events to an ``OutputSink`` and never reads from it.
Two implementations ship:

- ``RichRenderer`` : colored terminal output.  Content (status lines,
  log lines, summaries) goes to stdout; progress chatter goes to stderr.
- ``JsonRenderer`` : one JSON object per event per line on stdout.

Color scheme
------------
- green     : SUCCESS
- red       : FAILED
- yellow    : RUNNING
- magenta   : ABORTED
- dim       : UNKNOWN
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import IO, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from reprise.models.jobs import JobHandle, JobKind, JobSnapshot, JobStatus
from reprise.models.monitor import MonitorMode
from reprise.monitor.highlight import highlight_line

DEFAULT_WEB_BASE_URL = "https://app.bitrise.io"


# ---------------------------------------------------------------------------
# Status -> Rich style mapping
# ---------------------------------------------------------------------------

_STATUS_STYLES: dict[JobStatus, str] = {
    JobStatus.SUCCESS: "bold green",
    JobStatus.FAILED: "bold red",
    JobStatus.RUNNING: "bold yellow",
    JobStatus.ABORTED: "bold magenta",
    JobStatus.UNKNOWN: "dim",
}

_STATUS_ICONS: dict[JobStatus, str] = {
    JobStatus.SUCCESS: "[green]SUCCESS[/green]",
    JobStatus.FAILED: "[bold red]FAILED[/bold red]",
    JobStatus.RUNNING: "[yellow]RUNNING[/yellow]",
    JobStatus.ABORTED: "[magenta]ABORTED[/magenta]",
    JobStatus.UNKNOWN: "[dim]UNKNOWN[/dim]",
}

_MODE_VERBS: dict[MonitorMode, str] = {
    MonitorMode.WAIT: "Waiting for",
    MonitorMode.FOLLOW: "Following log of",
    MonitorMode.WATCH: "Watching",
    MonitorMode.FOLLOW_WATCH: "Following",
}


@runtime_checkable
class OutputSink(Protocol):
    """Receiver of monitoring events."""

    def started(self, handle: JobHandle, mode: MonitorMode) -> None:
        ...

    def transition(self, snapshot: JobSnapshot) -> None:
        ...

    def heartbeat(self, snapshot: JobSnapshot) -> None:
        ...

    def log_line(self, line: str) -> None:
        ...

    def completed(self, snapshot: JobSnapshot) -> None:
        ...

    def interrupted(self, handle: JobHandle) -> None:
        ...

    def failed(self, handle: JobHandle, error: BaseException) -> None:
        ...

    def triggered(self, handle: JobHandle) -> None:
        ...

    def show(self, snapshot: JobSnapshot) -> None:
        ...

    def app_link(self, app_slug: str, url: str) -> None:
        ...

    def aborted(self, snapshot: JobSnapshot, reason: str | None) -> None:
        ...

    def abort_skipped(self, snapshot: JobSnapshot) -> None:
        ...


# ---------------------------------------------------------------------------
# Rich
# ---------------------------------------------------------------------------


class RichRenderer:
    """Renders monitoring events as Rich terminal output.

    Parameters
    ----------
    console:
        Console for content.  A stdout console is created if not provided.
    err_console:
        Console for progress messages.  Defaults to a stderr console.
    web_base_url:
        Web root used when pointing the user at a job.
    """

    def __init__(
        self,
        console: Console | None = None,
        err_console: Console | None = None,
        *,
        web_base_url: str = DEFAULT_WEB_BASE_URL,
    ) -> None:
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self._web_base_url = web_base_url
        self._pending_dots = False

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def started(self, handle: JobHandle, mode: MonitorMode) -> None:
        self.err_console.print(
            f"[dim]{_MODE_VERBS[mode]} {handle}. Press Ctrl+C to stop.[/dim]"
        )

    def heartbeat(self, snapshot: JobSnapshot) -> None:
        self.err_console.print("[dim].[/dim]", end="")
        self._pending_dots = True

    def _end_dots(self) -> None:
        if self._pending_dots:
            self.err_console.print()
            self._pending_dots = False

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def transition(self, snapshot: JobSnapshot) -> None:
        """Print a one-line status update, plus per-stage status if any."""
        self._end_dots()
        stamp = datetime.now().strftime("%H:%M:%S")
        line = Text.assemble(
            (f"[{stamp}] ", "dim"),
            (f"{snapshot.display_name}: ", "bold"),
            (snapshot.status_label(), _STATUS_STYLES[snapshot.status]),
        )
        self.console.print(line)
        for stage in snapshot.stages:
            self.console.print(
                Text.assemble(
                    "  - ",
                    (stage.name, ""),
                    ": ",
                    (stage.status_text or stage.status.value, _STATUS_STYLES[stage.status]),
                )
            )

    def log_line(self, line: str) -> None:
        self._end_dots()
        self.console.print(Text(line, style=highlight_line(line)), soft_wrap=True)

    def completed(self, snapshot: JobSnapshot) -> None:
        """Print the final summary: status, duration and abort reason."""
        self._end_dots()
        self.console.print(self.render_snapshot(snapshot, title="Finished"))

    def show(self, snapshot: JobSnapshot) -> None:
        self.console.print(self.render_snapshot(snapshot))

    def render_snapshot(self, snapshot: JobSnapshot, title: str | None = None) -> Panel:
        """Render a snapshot as a Panel containing a details table."""
        details = Table.grid(padding=(0, 2))
        details.add_column(style="bold")
        details.add_column()

        details.add_row("Status", _STATUS_ICONS[snapshot.status])
        if snapshot.status_text and snapshot.status_text != snapshot.status.value:
            details.add_row("Label", escape(snapshot.status_text))
        if snapshot.title:
            label = "Workflow" if snapshot.kind is JobKind.BUILD else "Pipeline"
            details.add_row(label, escape(snapshot.title))
        if snapshot.branch:
            details.add_row("Branch", escape(snapshot.branch))
        details.add_row("Duration", snapshot.duration_display())
        if snapshot.abort_reason:
            details.add_row("Abort reason", f"[magenta]{escape(snapshot.abort_reason)}[/magenta]")
        details.add_row("URL", snapshot.handle.web_url(self._web_base_url))

        content: Table | Group = details
        if snapshot.stages:
            stages = Table(show_header=True, header_style="bold cyan", expand=False)
            stages.add_column("Workflow", min_width=20)
            stages.add_column("Status", justify="center")
            for stage in snapshot.stages:
                style = _STATUS_STYLES[stage.status]
                stages.add_row(f"[{style}]{escape(stage.name)}[/{style}]", _STATUS_ICONS[stage.status])
            content = Group(details, Text(""), stages)

        heading = snapshot.display_name if title is None else f"{snapshot.display_name} {title}"
        return Panel(
            content,
            title=f"[bold]{escape(heading)}[/bold]",
            border_style=_STATUS_STYLES[snapshot.status].replace("bold ", "") or "blue",
            padding=(0, 1),
        )

    def triggered(self, handle: JobHandle) -> None:
        self.console.print(
            f"[green]Triggered[/green] {handle.kind.value} [cyan]{handle.job_id}[/cyan]"
        )
        self.console.print(f"  {handle.web_url(self._web_base_url)}", soft_wrap=True)

    def app_link(self, app_slug: str, url: str) -> None:
        self.console.print(f"[bold]App:[/bold] [cyan]{app_slug}[/cyan]")
        self.console.print(f"  {url}", soft_wrap=True)

    def aborted(self, snapshot: JobSnapshot, reason: str | None) -> None:
        self.console.print(f"[green]Aborted[/green] [bold]{escape(snapshot.display_name)}[/bold]")
        if snapshot.title:
            self.console.print(f"  Workflow: {escape(snapshot.title)}")
        if snapshot.branch:
            self.console.print(f"  Branch:   {escape(snapshot.branch)}")
        if reason:
            self.console.print(f"  Reason:   {escape(reason)}")

    def abort_skipped(self, snapshot: JobSnapshot) -> None:
        self.console.print(
            f"[yellow]{escape(snapshot.display_name)} is not running[/yellow] "
            f"(status: {escape(snapshot.status_label())})"
        )

    # ------------------------------------------------------------------
    # Early exits
    # ------------------------------------------------------------------

    def interrupted(self, handle: JobHandle) -> None:
        self._end_dots()
        self.err_console.print(
            f"[yellow]Stopped monitoring {handle}.[/yellow] "
            "The job keeps running remotely."
        )
        self.err_console.print(f"  {handle.web_url(self._web_base_url)}", soft_wrap=True)

    def failed(self, handle: JobHandle, error: BaseException) -> None:
        self._end_dots()
        self.err_console.print(f"[bold red]Monitoring {handle} failed.[/bold red]")
        self.err_console.print(f"  {handle.web_url(self._web_base_url)}", soft_wrap=True)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------


class MonitorEvent(BaseModel):
    """One line of JSON output."""

    model_config = ConfigDict(frozen=True)

    event: str
    handle: JobHandle | None = None
    mode: MonitorMode | None = None
    snapshot: JobSnapshot | None = None
    line: str | None = None
    error: str | None = None
    url: str | None = None
    app_slug: str | None = None
    reason: str | None = None


class JsonRenderer:
    """Writes each monitoring event as one JSON object per line."""

    def __init__(
        self,
        stream: IO[str] | None = None,
        *,
        web_base_url: str = DEFAULT_WEB_BASE_URL,
    ) -> None:
        self._stream = stream
        self._web_base_url = web_base_url

    def _emit(self, event: MonitorEvent) -> None:
        stream = self._stream or sys.stdout
        stream.write(event.model_dump_json(exclude_none=True) + "\n")
        stream.flush()

    def started(self, handle: JobHandle, mode: MonitorMode) -> None:
        self._emit(MonitorEvent(event="started", handle=handle, mode=mode))

    def transition(self, snapshot: JobSnapshot) -> None:
        self._emit(MonitorEvent(event="transition", snapshot=snapshot))

    def heartbeat(self, snapshot: JobSnapshot) -> None:
        # Heartbeats carry no new information for machine consumers
        pass

    def log_line(self, line: str) -> None:
        self._emit(MonitorEvent(event="log", line=line))

    def completed(self, snapshot: JobSnapshot) -> None:
        self._emit(
            MonitorEvent(
                event="completed",
                snapshot=snapshot,
                url=snapshot.handle.web_url(self._web_base_url),
            )
        )

    def show(self, snapshot: JobSnapshot) -> None:
        self._emit(
            MonitorEvent(
                event="status",
                snapshot=snapshot,
                url=snapshot.handle.web_url(self._web_base_url),
            )
        )

    def interrupted(self, handle: JobHandle) -> None:
        self._emit(
            MonitorEvent(
                event="interrupted", handle=handle, url=handle.web_url(self._web_base_url)
            )
        )

    def failed(self, handle: JobHandle, error: BaseException) -> None:
        self._emit(
            MonitorEvent(
                event="failed",
                handle=handle,
                error=str(error),
                url=handle.web_url(self._web_base_url),
            )
        )

    def triggered(self, handle: JobHandle) -> None:
        self._emit(
            MonitorEvent(
                event="triggered", handle=handle, url=handle.web_url(self._web_base_url)
            )
        )

    def app_link(self, app_slug: str, url: str) -> None:
        self._emit(MonitorEvent(event="app", app_slug=app_slug, url=url))

    def aborted(self, snapshot: JobSnapshot, reason: str | None) -> None:
        self._emit(MonitorEvent(event="aborted", snapshot=snapshot, reason=reason))

    def abort_skipped(self, snapshot: JobSnapshot) -> None:
        self._emit(MonitorEvent(event="abort_skipped", snapshot=snapshot))


def make_renderer(output: str, *, web_base_url: str = DEFAULT_WEB_BASE_URL) -> OutputSink:
    """Return the renderer for an ``--output`` value (``pretty`` or ``json``)."""
    if output == "json":
        return JsonRenderer(web_base_url=web_base_url)
    return RichRenderer(web_base_url=web_base_url)
