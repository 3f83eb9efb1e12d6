"""Parse Bitrise web URLs into job addresses.

Recognised shapes (host must be ``app.bitrise.io``)::

    https://app.bitrise.io/app/{app-slug}
    https://app.bitrise.io/build/{build-slug}
    https://app.bitrise.io/app/{app-slug}/pipelines/{pipeline-id}
"""

from __future__ import annotations

from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

from reprise.errors import InvalidArgumentError
from reprise.models.jobs import JobHandle, JobKind

WEB_HOST = "app.bitrise.io"


class UrlKind(str, Enum):
    APP = "app"
    BUILD = "build"
    PIPELINE = "pipeline"


class ParsedUrl(BaseModel):
    """A recognised Bitrise URL.

    Build URLs carry no app slug; ``app_slug`` is ``None`` for them.
    App URLs carry no job id.
    """

    model_config = ConfigDict(frozen=True)

    kind: UrlKind
    app_slug: str | None = None
    job_id: str | None = None

    def to_url(self) -> str:
        """Reconstruct the canonical web URL."""
        if self.kind is UrlKind.APP:
            return f"https://{WEB_HOST}/app/{self.app_slug}"
        if self.kind is UrlKind.BUILD:
            return f"https://{WEB_HOST}/build/{self.job_id}"
        return f"https://{WEB_HOST}/app/{self.app_slug}/pipelines/{self.job_id}"

    def to_handle(self, app_slug: str | None = None) -> JobHandle:
        """Build a ``JobHandle``; build URLs need the owning *app_slug*."""
        if self.kind is UrlKind.APP:
            raise InvalidArgumentError("An app URL does not address a job")
        owner = self.app_slug or app_slug
        if not owner:
            raise InvalidArgumentError(f"No app slug known for {self.to_url()}")
        kind = JobKind.PIPELINE if self.kind is UrlKind.PIPELINE else JobKind.BUILD
        return JobHandle(app_slug=owner, job_id=self.job_id or "", kind=kind)


def parse_job_url(url: str) -> ParsedUrl:
    """Parse *url*, raising ``InvalidArgumentError`` for anything unrecognised."""
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        raise InvalidArgumentError(f"Invalid URL: {url}")

    host = (parsed.hostname or "").lower()
    if host != WEB_HOST:
        raise InvalidArgumentError(
            f"Not a Bitrise URL (expected {WEB_HOST}, got {host or '?'}): {url}"
        )

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) == 2 and segments[0] == "app":
        return ParsedUrl(kind=UrlKind.APP, app_slug=segments[1])
    if len(segments) == 4 and segments[0] == "app" and segments[2] == "pipelines":
        return ParsedUrl(kind=UrlKind.PIPELINE, app_slug=segments[1], job_id=segments[3])
    if len(segments) == 2 and segments[0] == "build":
        return ParsedUrl(kind=UrlKind.BUILD, job_id=segments[1])

    raise InvalidArgumentError(
        f"Unrecognized Bitrise URL pattern: {url}. Expected /app/{{slug}}, "
        "/build/{slug}, or /app/{slug}/pipelines/{id}"
    )
