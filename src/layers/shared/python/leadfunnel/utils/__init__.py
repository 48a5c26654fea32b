"""Utility functions and helpers."""

from leadfunnel.utils.exceptions import (
    ConflictError,
    FunnelError,
    RateLimitError,
    UpstreamError,
    ValidationError,
    WebhookUnavailableError,
)
from leadfunnel.utils.responses import error, from_exception, html_page, success, validation_error

__all__ = [
    # Response helpers
    "success",
    "error",
    "from_exception",
    "validation_error",
    "html_page",
    # Exceptions
    "FunnelError",
    "ValidationError",
    "UpstreamError",
    "WebhookUnavailableError",
    "ConflictError",
    "RateLimitError",
]
