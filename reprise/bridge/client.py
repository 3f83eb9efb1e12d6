"""Bitrise API client — the monitor's only window onto remote jobs.

Bridge boundary
---------------
Monitoring code depends on the ``RemoteJobClient`` protocol, never on
httpx directly.  ``BitriseClient`` implements the protocol over an
``httpx.Client`` and translates every failure into the Reprise error
taxonomy:

- non-2xx response  -> ``ApiError(status, body)`` (5xx is transient)
- network failure   -> ``TransportError`` (never retried)
- untrusted log URL -> ``UnsafeUrlError``
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from reprise import __version__
from reprise.errors import (
    ApiError,
    InvalidArgumentError,
    LogNotAvailableError,
    ResponseFormatError,
    TransportError,
    UnsafeUrlError,
)
from reprise.models.api import BuildPayload, LogPayload, PipelinePayload
from reprise.models.jobs import JobHandle, JobKind, JobSnapshot, TriggerSpec

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.bitrise.io/v0.1"
DEFAULT_ABORT_REASON = "Aborted via reprise CLI"
USER_AGENT = f"reprise/{__version__}"

# Hosts the client may follow server-supplied URLs to
ALLOWED_HOSTS: frozenset[str] = frozenset(
    {
        "bitrise.io",
        "app.bitrise.io",
        "bitrise-build-log-archives.s3.amazonaws.com",
        "bitrise-build-log-archives-eu-west-1.s3.eu-west-1.amazonaws.com",
        "bitrise-prod-build-storage.s3.amazonaws.com",
        "bitrise-prod-build-storage.s3.us-west-2.amazonaws.com",
        "storage.googleapis.com",
    }
)


@runtime_checkable
class RemoteJobClient(Protocol):
    """The remote operations the monitoring engine needs."""

    def get_status(self, handle: JobHandle) -> JobSnapshot:
        ...

    def get_log(self, handle: JobHandle) -> str:
        ...

    def trigger(self, spec: TriggerSpec) -> JobHandle:
        ...

    def rebuild(self, handle: JobHandle, partial: bool = False) -> JobHandle:
        ...

    def abort(self, handle: JobHandle, reason: str | None = None) -> None:
        ...


def validate_external_url(url: str, purpose: str = "Download") -> None:
    """Reject server-supplied URLs that are not HTTPS on an allowed host."""
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise UnsafeUrlError(f"{purpose} URL must use HTTPS: {url}")
    host = (parsed.hostname or "").lower()
    if host not in ALLOWED_HOSTS:
        raise UnsafeUrlError(f"{purpose} URL host is not trusted: {host or url}")


class BitriseClient:
    """Synchronous Bitrise API client.

    Parameters
    ----------
    token:
        Personal access token sent in the ``Authorization`` header.
    base_url:
        API root.  Overridable for tests and self-hosted proxies.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": token, "User-Agent": USER_AGENT},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            max_redirects=5,
            transport=transport,
        )
        # Raw log URLs are pre-signed; never send the token there
        self._raw = httpx.Client(
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            max_redirects=5,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()
        self._raw.close()

    def __enter__(self) -> BitriseClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _send(self, client: httpx.Client, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"HTTP request failed: {exc}") from exc
        if not response.is_success:
            raise ApiError(response.status_code, response.text)
        return response

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._decode(self._send(self._http, "GET", path, params=params))

    def _post_json(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        data = self._decode(self._send(self._http, "POST", path, json=body))
        if not isinstance(data, dict):
            raise ResponseFormatError(f"Expected a JSON object from POST {path}")
        return data

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseFormatError(f"Failed to parse response: {exc}") from exc

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    def list_app_slugs(self, limit: int = 50) -> list[str]:
        """Return the slugs of the apps the token can see."""
        payload = self._get_json("/apps", params={"limit": limit})
        return [app["slug"] for app in payload.get("data", []) if app.get("slug")]

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, handle: JobHandle) -> JobSnapshot:
        """Fetch a fresh snapshot of a build or pipeline."""
        if handle.kind is JobKind.PIPELINE:
            raw = self._get_json(f"/apps/{handle.app_slug}/pipelines/{handle.job_id}")
            return self._parse(PipelinePayload, raw).to_snapshot(handle.app_slug)

        raw = self._get_json(f"/apps/{handle.app_slug}/builds/{handle.job_id}")
        data = raw.get("data", raw) if isinstance(raw, dict) else raw
        return self._parse(BuildPayload, data).to_snapshot(handle.app_slug)

    @staticmethod
    def _parse(model: type[Any], raw: Any) -> Any:
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise ResponseFormatError(f"Failed to parse response: {exc}") from exc

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def get_log(self, handle: JobHandle) -> str:
        """Fetch the full current log of a build."""
        if handle.kind is not JobKind.BUILD:
            raise InvalidArgumentError(
                "Logs are only available for builds (pipelines contain multiple workflows)"
            )

        raw = self._get_json(f"/apps/{handle.app_slug}/builds/{handle.job_id}/log")
        payload = self._parse(LogPayload, raw)

        if payload.expiring_raw_log_url:
            validate_external_url(payload.expiring_raw_log_url, "Log")
            content = self._send(self._raw, "GET", payload.expiring_raw_log_url).text
        else:
            content = payload.joined_chunks()

        if not content:
            raise LogNotAvailableError("Log content is empty or not yet available.")
        return content

    # ------------------------------------------------------------------
    # Triggering
    # ------------------------------------------------------------------

    def trigger(self, spec: TriggerSpec) -> JobHandle:
        """Start a new build or pipeline and return its handle."""
        build_params: dict[str, Any] = {}
        if spec.kind is JobKind.PIPELINE:
            build_params["pipeline_id"] = spec.target
        else:
            build_params["workflow_id"] = spec.target
            if spec.commit_message:
                build_params["commit_message"] = spec.commit_message
        if spec.branch:
            build_params["branch"] = spec.branch
        if spec.environments:
            build_params["environments"] = [
                {"mapped_to": key, "value": value, "is_expand": True}
                for key, value in spec.environments.items()
            ]

        body = {"hook_info": {"type": "bitrise"}, "build_params": build_params}

        if spec.kind is JobKind.PIPELINE:
            response = self._post_json(f"/apps/{spec.app_slug}/pipelines", body)
            job_id = response.get("id")
        else:
            response = self._post_json(f"/apps/{spec.app_slug}/builds", body)
            job_id = response.get("build_slug")

        if not job_id:
            raise ApiError(
                500,
                f"{spec.kind.value.title()} triggered but no id returned: "
                f"{response.get('message', '')}",
            )

        logger.info("Triggered %s %s on app %s", spec.kind.value, job_id, spec.app_slug)
        return JobHandle(app_slug=spec.app_slug, job_id=job_id, kind=spec.kind)

    def rebuild(self, handle: JobHandle, partial: bool = False) -> JobHandle:
        """Rebuild a pipeline; returns the new pipeline's handle."""
        if handle.kind is not JobKind.PIPELINE:
            raise InvalidArgumentError("Only pipelines can be rebuilt")

        response = self._post_json(
            f"/apps/{handle.app_slug}/pipelines/{handle.job_id}/rebuild",
            {"partial": partial},
        )
        new_id = response.get("id") or handle.job_id
        return JobHandle(app_slug=handle.app_slug, job_id=new_id, kind=JobKind.PIPELINE)

    def abort(self, handle: JobHandle, reason: str | None = None) -> None:
        """Abort a running build or pipeline."""
        collection = "pipelines" if handle.kind is JobKind.PIPELINE else "builds"
        self._post_json(
            f"/apps/{handle.app_slug}/{collection}/{handle.job_id}/abort",
            {
                "abort_reason": reason or DEFAULT_ABORT_REASON,
                "abort_with_success": False,
                "skip_notifications": False,
            },
        )
        logger.info("Aborted %s", handle)
