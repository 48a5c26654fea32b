"""Relay of intake events to the automation (n8n) webhook."""

import json
import os
from typing import Any

import boto3
import httpx
import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from leadfunnel.models.intake import IntakeResponseEnvelope, IntakeResult
from leadfunnel.utils.exceptions import UpstreamError, WebhookUnavailableError

logger = structlog.get_logger()

DEFAULT_WEBHOOK_TIMEOUT = 15.0
DEFAULT_STATUS_TIMEOUT = 10.0

_result_adapter: TypeAdapter[IntakeResult] = TypeAdapter(IntakeResult)


def normalise_result(envelope: dict[str, Any]) -> dict[str, Any] | None:
    """Reduce a webhook envelope to a client result.

    Returns:
        A ``thank_you | link | embed`` result or a ``{"job_id": ...}`` marker,
        or None if the envelope is an error or carries no usable result.
    """
    try:
        parsed = IntakeResponseEnvelope.model_validate(envelope)
    except PydanticValidationError:
        return None
    if parsed.status == "error" or not parsed.result:
        return None
    try:
        result = _result_adapter.validate_python(parsed.result)
    except PydanticValidationError:
        return None
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


class WebhookRelay:
    """Client for the tenant-independent automation webhook.

    Configured from N8N_WEBHOOK_URL and N8N_WEBHOOK_API_KEY (sent as
    ``X-API-Key``, to that URL only). Timeouts come from
    WEBHOOK_TIMEOUT_SECONDS and STATUS_TIMEOUT_SECONDS. When RELAY_QUEUE_URL
    is set, relays are queued to SQS and delivered by the webhook relay
    worker; otherwise they are delivered before ``relay`` returns.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        queue_url: str | None = None,
    ):
        """Initialize webhook relay.

        Args:
            url: Default webhook URL. Defaults to N8N_WEBHOOK_URL env var.
            api_key: API key header value. Defaults to N8N_WEBHOOK_API_KEY.
            client: Optional httpx client (tests pass one with a MockTransport).
            queue_url: SQS queue for relays. Defaults to RELAY_QUEUE_URL.
        """
        self.url = url if url is not None else os.environ.get("N8N_WEBHOOK_URL") or None
        self.api_key = api_key if api_key is not None else os.environ.get("N8N_WEBHOOK_API_KEY")
        self.queue_url = (
            queue_url if queue_url is not None else os.environ.get("RELAY_QUEUE_URL") or None
        )
        self.timeout = float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", DEFAULT_WEBHOOK_TIMEOUT))
        self.status_timeout = float(
            os.environ.get("STATUS_TIMEOUT_SECONDS", DEFAULT_STATUS_TIMEOUT)
        )
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        """Get HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.Client()
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this relay created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "WebhookRelay":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def headers(self, url: str) -> dict[str, str]:
        """Headers for a webhook request; the API key goes to the default URL only."""
        headers = {"Content-Type": "application/json"}
        if self.api_key and url == self.url:
            headers["X-API-Key"] = self.api_key
        return headers

    def forward(
        self,
        payload: dict[str, Any],
        url: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """POST a payload and return the decoded response envelope.

        Raises:
            WebhookUnavailableError: Not configured, unreachable, timed out or non-2xx.
            UpstreamError: The response body is not a JSON object.
        """
        target = url or self.url
        if not target:
            raise WebhookUnavailableError(reason="N8N_WEBHOOK_URL is not set")

        try:
            response = self.client.post(
                target,
                json=payload,
                headers=self.headers(target),
                timeout=timeout or self.timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise WebhookUnavailableError(timed_out=True, reason=str(e)) from e
        except httpx.HTTPStatusError as e:
            raise WebhookUnavailableError(
                reason=f"Webhook returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise WebhookUnavailableError(reason=str(e)) from e

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(reason="Webhook response is not JSON") from e
        if not isinstance(data, dict):
            raise UpstreamError(reason="Webhook response is not an object")
        return data

    def relay(self, payload: dict[str, Any], url: str | None = None) -> bool:
        """Hand a payload to the webhook without surfacing failures.

        Queued when RELAY_QUEUE_URL is set, otherwise delivered inline.
        Failures are logged and never reach the caller.

        Args:
            payload: Intake payload.
            url: Webhook override (a tenant's stored CTA webhook URL).

        Returns:
            True if the payload was queued or delivered.
        """
        target = url or self.url
        if not target:
            logger.debug("Webhook not configured, relay skipped", intake_event=payload.get("event"))
            return False
        if self.queue_url:
            return self._enqueue(payload, url)
        return self.deliver(payload, target)

    def _enqueue(self, payload: dict[str, Any], url: str | None) -> bool:
        try:
            boto3.client("sqs").send_message(
                QueueUrl=self.queue_url,
                MessageBody=json.dumps({"payload": payload, "url": url}),
            )
        except Exception as e:
            logger.exception(
                "Relay enqueue failed",
                app_id=payload.get("app_id"),
                intake_event=payload.get("event"),
                error=str(e),
            )
            return False
        logger.debug(
            "Relay queued",
            app_id=payload.get("app_id"),
            intake_event=payload.get("event"),
        )
        return True

    def deliver(self, payload: dict[str, Any], url: str | None = None) -> bool:
        """Forward once, logging instead of raising. Returns whether it was delivered."""
        try:
            self.forward(payload, url=url)
        except WebhookUnavailableError as e:
            logger.warning(
                "Webhook relay failed",
                app_id=payload.get("app_id"),
                intake_event=payload.get("event"),
                cta_tag=payload.get("cta_tag"),
                timed_out=e.timed_out,
                reason=e.reason,
            )
            return False
        except UpstreamError as e:
            # The webhook got the payload; only its reply was unusable
            logger.warning(
                "Webhook relay got unusable response",
                app_id=payload.get("app_id"),
                intake_event=payload.get("event"),
                reason=e.reason,
            )
            return True
        logger.info(
            "Webhook relay delivered",
            app_id=payload.get("app_id"),
            intake_event=payload.get("event"),
        )
        return True

    def submit(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Forward a submit and wait for the webhook's result (legacy sync mode).

        Returns:
            ``{"result": ...}`` plus the envelope ``message`` when present.

        Raises:
            UpstreamError: The webhook signalled failure or returned no usable result.
            WebhookUnavailableError: The webhook could not be reached in time.
        """
        envelope = self.forward(payload)
        if envelope.get("status") == "error":
            raise UpstreamError(reason=envelope.get("message") or "Webhook returned an error")

        result = normalise_result(envelope)
        if result is None:
            raise UpstreamError(reason="Invalid response from webhook")

        response: dict[str, Any] = {"result": result}
        if envelope.get("message"):
            response["message"] = envelope["message"]
        return response

    def poll_status(self, job_id: str) -> dict[str, Any] | None:
        """Ask the webhook whether a job has finished.

        Returns:
            The final result, or None while the job is still pending.

        Raises:
            UpstreamError: The webhook reported an error for the job.
            WebhookUnavailableError: Not configured or unreachable.
        """
        envelope = self.forward({"job_id": job_id}, timeout=self.status_timeout)
        if envelope.get("status") == "error":
            raise UpstreamError(reason=envelope.get("message") or "Webhook returned an error")

        result = normalise_result(envelope)
        if result is None or "job_id" in result:
            return None
        return result
