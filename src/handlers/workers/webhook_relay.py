"""Webhook relay worker.

Delivers queued intake events (progress beacons, CTA actions and async
submits) to the automation webhook.
"""

import json
from typing import Any

import structlog

from leadfunnel.services.webhook import WebhookRelay
from leadfunnel.utils.exceptions import UpstreamError, WebhookUnavailableError

logger = structlog.get_logger()


def handler(event: dict[str, Any], context: Any) -> dict:
    """Process relay messages from the SQS queue.

    Unreachable or failing webhooks are reported as batch item failures so
    SQS retries them. Unusable webhook replies are not retried.

    Args:
        event: SQS event with records.
        context: Lambda context.

    Returns:
        Partial batch response.
    """
    records = event.get("Records", [])

    logger.info("Processing relay queue", record_count=len(records))

    failures = []
    with WebhookRelay() as relay:
        for record in records:
            if not process_record(relay, record):
                failures.append({"itemIdentifier": record["messageId"]})

    return {"batchItemFailures": failures}


def process_record(relay: WebhookRelay, record: dict) -> bool:
    """Forward one queued payload. Returns False if it should be retried."""
    try:
        body = json.loads(record.get("body") or "{}")
    except json.JSONDecodeError:
        logger.error("Discarding malformed relay message", message_id=record.get("messageId"))
        return True

    payload = body.get("payload")
    if not isinstance(payload, dict):
        logger.error("Discarding relay message without payload", message_id=record.get("messageId"))
        return True

    try:
        relay.forward(payload, url=body.get("url"))
    except WebhookUnavailableError as e:
        logger.warning(
            "Relay delivery failed, will retry",
            message_id=record.get("messageId"),
            app_id=payload.get("app_id"),
            intake_event=payload.get("event"),
            timed_out=e.timed_out,
            reason=e.reason,
        )
        return False
    except UpstreamError as e:
        logger.warning(
            "Webhook relay got unusable response",
            message_id=record.get("messageId"),
            app_id=payload.get("app_id"),
            reason=e.reason,
        )
        return True

    logger.info(
        "Relay delivered",
        message_id=record.get("messageId"),
        app_id=payload.get("app_id"),
        intake_event=payload.get("event"),
    )
    return True
