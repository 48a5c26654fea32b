"""Funnel-side client for the intake API."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

import httpx
import structlog

from leadfunnel.utils.exceptions import (
    FunnelError,
    UpstreamError,
    ValidationError,
    WebhookUnavailableError,
)

logger = structlog.get_logger()

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="intake-beacon")


class IntakeClient(Protocol):
    """Transport used by the funnel to reach the intake API."""

    def send(self, payload: dict[str, Any]) -> Future | None:
        """Fire-and-forget POST (progress beacons, CTA actions). Never raises."""
        ...

    def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Blocking POST of the final submission. Raises FunnelError on failure."""
        ...

    def poll_status(self, job_id: str) -> dict[str, Any]:
        """Blocking GET of a job's status (legacy sync mode)."""
        ...


def error_from_response(response: httpx.Response) -> FunnelError:
    """Rebuild the API's error body as an exception."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or GENERIC_ERROR_MESSAGE
    error_code = body.get("error_code")
    if error_code == "validation_failed":
        return ValidationError(message, errors=(body.get("details") or {}).get("errors"))
    return FunnelError(message, error_code=error_code, status_code=response.status_code)


def json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a 2xx body, which must be a JSON object."""
    try:
        body = response.json()
    except ValueError as e:
        raise UpstreamError(reason="Intake response is not JSON") from e
    if not isinstance(body, dict):
        raise UpstreamError(reason="Intake response is not an object")
    return body


class HttpIntakeClient:
    """IntakeClient over HTTP.

    Args:
        base_url: Origin serving the intake API, e.g. ``https://lionsden.example.com``.
        client: Optional httpx client (tests pass one with a MockTransport).
            The default client waits as long as the API takes.
        executor: Pool for fire-and-forget calls.
    """

    intake_path = "/api/intake"
    status_path = "/api/intake/status"

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=None)
        self._executor = executor or _executor

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpIntakeClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send(self, payload: dict[str, Any]) -> Future:
        return self._executor.submit(self._send, payload)

    def _send(self, payload: dict[str, Any]) -> None:
        try:
            response = self.client.post(self.base_url + self.intake_path, json=payload)
        except httpx.HTTPError as e:
            logger.debug("Beacon failed", intake_event=payload.get("event"), error=str(e))
            return
        if not response.is_success:
            logger.debug(
                "Beacon rejected",
                intake_event=payload.get("event"),
                status_code=response.status_code,
            )

    def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.client.post(self.base_url + self.intake_path, json=payload)
        except httpx.TimeoutException as e:
            raise WebhookUnavailableError(timed_out=True, reason=str(e)) from e
        except httpx.HTTPError as e:
            raise WebhookUnavailableError(reason=str(e)) from e

        if not response.is_success:
            raise error_from_response(response)
        return json_object(response)

    def poll_status(self, job_id: str) -> dict[str, Any]:
        try:
            response = self.client.get(
                self.base_url + self.status_path,
                params={"job_id": job_id},
            )
        except httpx.HTTPError as e:
            raise WebhookUnavailableError(reason=str(e)) from e

        if not response.is_success:
            raise error_from_response(response)
        return json_object(response)
