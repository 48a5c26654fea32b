"""Custom exception classes for the lead funnel."""


class FunnelError(Exception):
    """Base exception for all lead funnel errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 500,
        details: dict | None = None,
    ):
        """Initialize FunnelError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            status_code: HTTP status code for API responses.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "internal_error"
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API response."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(FunnelError):
    """Malformed request, unknown app_id, or a contact field failing its rule."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict] | None = None,
    ):
        """Initialize ValidationError.

        Args:
            message: Error message shown to the submitter.
            errors: List of validation errors with field and message.
        """
        self.errors = errors or []
        super().__init__(
            message=message,
            error_code="validation_failed",
            status_code=400,
            details={"errors": self.errors} if self.errors else None,
        )

    @classmethod
    def from_pydantic(cls, exc: Exception, message: str = "Invalid request body") -> "ValidationError":
        """Create ValidationError from Pydantic ValidationError."""
        errors = []
        if hasattr(exc, "errors"):
            for error in exc.errors():
                errors.append(
                    {
                        "field": ".".join(str(loc) for loc in error.get("loc", [])),
                        "message": error.get("msg", "Invalid value"),
                        "type": error.get("type", "unknown"),
                    }
                )
        return cls(message=message, errors=errors)


class UpstreamError(FunnelError):
    """The automation webhook answered but signalled failure or an unusable shape.

    ``reason`` is kept for logs; the submitter only sees a generic message.
    """

    def __init__(self, reason: str | None = None):
        """Initialize UpstreamError."""
        self.reason = reason
        super().__init__(
            message="Something went wrong. Please try again.",
            error_code="upstream_error",
            status_code=502,
        )


class WebhookUnavailableError(FunnelError):
    """The automation webhook could not be reached or timed out."""

    def __init__(self, timed_out: bool = False, reason: str | None = None):
        """Initialize WebhookUnavailableError.

        Args:
            timed_out: Whether the failure was a timeout (logged, not shown).
            reason: Underlying error text for logs.
        """
        self.timed_out = timed_out
        self.reason = reason
        super().__init__(
            message="Request failed. Please try again.",
            error_code="webhook_unavailable",
            status_code=502,
        )


class ConflictError(FunnelError):
    """Raised on duplicates or optimistic lock failures."""

    def __init__(self, message: str = "Resource conflict"):
        """Initialize ConflictError."""
        super().__init__(
            message=message,
            error_code="conflict",
            status_code=409,
        )


class RateLimitError(FunnelError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: int | None = None,
    ):
        """Initialize RateLimitError."""
        self.retry_after = retry_after
        super().__init__(
            message=message,
            error_code="rate_limited",
            status_code=429,
            details={"retry_after_seconds": retry_after} if retry_after else None,
        )
