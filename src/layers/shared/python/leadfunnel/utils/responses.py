"""API Gateway proxy responses for the public endpoints."""

import json
import os
from datetime import datetime
from typing import Any

from pydantic import BaseModel as PydanticBaseModel

from leadfunnel.utils.exceptions import FunnelError


def cors_headers() -> dict[str, str]:
    """Headers for JSON responses.

    Funnels are served from tenant domains, so any origin is answered unless
    CORS_ALLOWED_ORIGIN pins one.
    """
    return {
        "Access-Control-Allow-Origin": os.environ.get("CORS_ALLOWED_ORIGIN", "*"),
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Content-Type": "application/json",
    }


def _default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticBaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _json_response(status_code: int, body: Any, extra_headers: dict | None = None) -> dict:
    return {
        "statusCode": status_code,
        "headers": {**cors_headers(), **(extra_headers or {})},
        "body": json.dumps(body, default=_default),
    }


def success(data: Any, status_code: int = 200) -> dict:
    """JSON response with ``data`` as the body (dicts, lists or pydantic models)."""
    return _json_response(status_code, data)


def error(
    message: str,
    status_code: int = 500,
    error_code: str | None = None,
    details: dict | None = None,
) -> dict:
    """Error response in the ``{"error": true, "message", "error_code"?, "details"?}`` shape.

    Args:
        message: Text safe to show to the visitor.
        status_code: HTTP status code.
        error_code: Machine-readable code, e.g. ``validation_failed``.
        details: Extra structured data, e.g. per-field errors.
    """
    body: dict[str, Any] = {"error": True, "message": message}
    if error_code:
        body["error_code"] = error_code
    if details:
        body["details"] = details
    return _json_response(status_code, body)


def from_exception(exc: FunnelError) -> dict:
    """Error response for a FunnelError; rate limits also get Retry-After."""
    response = error(exc.message, exc.status_code, exc.error_code, exc.details or None)
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        response["headers"]["Retry-After"] = str(retry_after)
    return response


def validation_error(message: str, errors: list[dict] | None = None) -> dict:
    return error(message, 400, "validation_failed", {"errors": errors} if errors else None)


def html_page(body: str, status_code: int = 200, cache_seconds: int = 0) -> dict:
    """text/html response (no CORS: pages are fetched by the browser directly)."""
    headers = {
        "Content-Type": "text/html; charset=utf-8",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }
    if cache_seconds:
        headers["Cache-Control"] = f"public, max-age={cache_seconds}"
    return {"statusCode": status_code, "headers": headers, "body": body}
