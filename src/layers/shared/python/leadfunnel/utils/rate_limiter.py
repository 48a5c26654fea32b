"""Per-IP submit throttling backed by DynamoDB counters.

Each check bumps one counter item per window (minute, hour). Counter items
carry a ``ttl`` so DynamoDB expires them once the window is over.
"""

import os
import time
from typing import NamedTuple

import boto3
import structlog
from botocore.exceptions import ClientError

logger = structlog.get_logger()

DEFAULT_REQUESTS_PER_MINUTE = 10
DEFAULT_REQUESTS_PER_HOUR = 100


class RateLimitResult(NamedTuple):
    """Outcome of one throttle check."""

    allowed: bool
    requests_remaining: int
    retry_after: int | None  # seconds until the blocking window rolls over


class _Window(NamedTuple):
    name: str
    seconds: int
    limit: int


def _get_table():
    """Counters live in the main table under RATELIMIT# partition keys."""
    return boto3.resource("dynamodb").Table(os.environ.get("TABLE_NAME", "leadfunnel-dev"))


def _bump(table, action: str, window: _Window, identifier: str, now: int) -> int:
    bucket = now // window.seconds
    response = table.update_item(
        Key={"PK": f"RATELIMIT#{action}#{window.name}#{bucket}", "SK": identifier},
        UpdateExpression="SET #count = if_not_exists(#count, :zero) + :one, #ttl = :expires",
        ExpressionAttributeNames={"#count": "count", "#ttl": "ttl"},
        ExpressionAttributeValues={":zero": 0, ":one": 1, ":expires": now + 2 * window.seconds},
        ReturnValues="UPDATED_NEW",
    )
    return int(response["Attributes"]["count"])


def check_rate_limit(
    identifier: str,
    action: str,
    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE,
    requests_per_hour: int = DEFAULT_REQUESTS_PER_HOUR,
) -> RateLimitResult:
    """Count a request against the minute and hour windows.

    The hour window is only bumped once the minute window passes. Counter
    errors fail open: a DynamoDB outage must not block lead submissions.

    Args:
        identifier: Who is throttled, normally the client IP.
        action: Counter namespace, e.g. ``intake_submit``.
        requests_per_minute: Minute window limit.
        requests_per_hour: Hour window limit.
    """
    windows = (
        _Window("MIN", 60, requests_per_minute),
        _Window("HOUR", 3600, requests_per_hour),
    )
    table = _get_table()
    now = int(time.time())
    remaining: list[int] = []
    log = logger.bind(identifier=identifier[:20], action=action)

    try:
        for window in windows:
            count = _bump(table, action, window, identifier, now)
            if count > window.limit:
                log.warning("Rate limit exceeded", window=window.name, count=count, limit=window.limit)
                return RateLimitResult(False, 0, window.seconds - now % window.seconds)
            remaining.append(window.limit - count)
    except ClientError as e:
        log.error("Rate limiter DynamoDB error", error=str(e))
        return RateLimitResult(allowed=True, requests_remaining=-1, retry_after=None)

    return RateLimitResult(allowed=True, requests_remaining=min(remaining), retry_after=None)


def get_client_ip(event: dict) -> str:
    """Visitor IP: first X-Forwarded-For hop (CloudFront), else the API Gateway source IP."""
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    identity = (event.get("requestContext") or {}).get("identity") or {}
    return identity.get("sourceIp") or "unknown"
