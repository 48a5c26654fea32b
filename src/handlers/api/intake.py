"""Intake API handler (public, no authentication)."""

import json
from typing import Any

import structlog

from leadfunnel.services.intake_service import IntakeService
from leadfunnel.utils.exceptions import FunnelError, RateLimitError
from leadfunnel.utils.rate_limiter import check_rate_limit, get_client_ip
from leadfunnel.utils.responses import error, from_exception, success, validation_error

logger = structlog.get_logger()

SUBMIT_REQUESTS_PER_MINUTE = 10
SUBMIT_REQUESTS_PER_HOUR = 100


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle intake API requests.

    Routes:
        POST /api/intake              - Progress or submit event from a funnel
        GET  /api/intake/status       - Poll a job result (legacy sync mode)
    """
    try:
        http_method = event.get("httpMethod", "").upper()
        path = event.get("path", "")
        query_params = event.get("queryStringParameters", {}) or {}

        if path.rstrip("/").endswith("/api/intake/status") and http_method == "GET":
            return get_status(query_params.get("job_id"))
        elif path.rstrip("/").endswith("/api/intake") and http_method == "POST":
            return post_intake(event)
        elif http_method == "OPTIONS":
            return success({})
        else:
            return error("Not found", 404, error_code="not_found")

    except FunnelError as e:
        return from_exception(e)
    except Exception as e:
        logger.exception("Intake handler error", error=str(e))
        return error("Internal server error", 500)


def post_intake(event: dict) -> dict:
    """Validate an intake event and relay it to the webhook."""
    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError:
        return validation_error("Invalid request body")

    # Progress beacons are not rate limited
    if isinstance(body, dict) and body.get("event") == "submit":
        _check_submit_rate(event)

    with IntakeService() as service:
        return success(service.handle(body))


def get_status(job_id: str | None) -> dict:
    """Return a finished job result or a pending marker."""
    with IntakeService() as service:
        return success(service.status(job_id))


def _check_submit_rate(event: dict) -> None:
    client_ip = get_client_ip(event)
    rate_check = check_rate_limit(
        identifier=client_ip,
        action="intake_submit",
        requests_per_minute=SUBMIT_REQUESTS_PER_MINUTE,
        requests_per_hour=SUBMIT_REQUESTS_PER_HOUR,
    )
    if not rate_check.allowed:
        raise RateLimitError(retry_after=rate_check.retry_after or 60)
