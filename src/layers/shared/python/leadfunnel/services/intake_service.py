"""Server side of the intake API: validate, then relay to the webhook."""

from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from leadfunnel.models.cta import CtaMultiChoice, WebhookThenMessageOption
from leadfunnel.models.intake import IntakeRequest
from leadfunnel.models.tenant import SubmissionMode, Tenant
from leadfunnel.repositories.tenant import TenantRepository
from leadfunnel.services.privacy_policy import is_consent_gated
from leadfunnel.services.validation import validate_contact_payload
from leadfunnel.services.webhook import WebhookRelay
from leadfunnel.utils.exceptions import UpstreamError, ValidationError, WebhookUnavailableError

logger = structlog.get_logger()

NO_WEBHOOK_MESSAGE = "Thanks. (No webhook configured - add N8N_WEBHOOK_URL to test n8n.)"


class IntakeService:
    """Handles progress and submit events posted by funnels."""

    def __init__(
        self,
        tenant_repo: TenantRepository | None = None,
        relay: WebhookRelay | None = None,
    ):
        self.tenant_repo = tenant_repo or TenantRepository()
        self.relay = relay or WebhookRelay()

    def close(self) -> None:
        self.relay.close()

    def __enter__(self) -> "IntakeService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def parse(self, body: Any) -> IntakeRequest:
        """Parse a raw JSON body into an IntakeRequest.

        Raises:
            ValidationError: If the body does not conform.
        """
        if not isinstance(body, dict):
            raise ValidationError("Invalid request body")
        try:
            return IntakeRequest.model_validate(body)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e) from e

    def handle(self, body: Any) -> dict[str, Any]:
        """Process one intake event and build the response body.

        Raises:
            ValidationError: Malformed body, unknown app_id, unknown cta_tag
                or bad contact field.
            UpstreamError: Sync mode only, the webhook returned an error.
            WebhookUnavailableError: Sync mode only, the webhook was unreachable.
        """
        request = self.parse(body)

        tenant = self.tenant_repo.get_by_id(request.app_id)
        if tenant is None:
            raise ValidationError("Unknown app_id")

        if request.event == "submit":
            self._validate_submit(request, tenant)

        log = logger.bind(app_id=request.app_id, intake_event=request.event, session_id=request.session_id)
        payload = request.to_webhook_payload()

        if request.event == "progress":
            self.relay.relay(payload)
            log.debug("Progress relayed", step=request.step, question_id=request.question_id)
            return {"ok": True}

        if request.is_cta_action:
            option = self._cta_option(request, tenant)
            self.relay.relay(payload, url=option.webhook_url or None)
            log.info("CTA action relayed", cta_tag=request.cta_tag)
            return {"ok": True}

        if tenant.config.submission_mode == SubmissionMode.SYNC:
            return self._submit_sync(payload, log)

        self.relay.relay(payload)
        log.info("Submission relayed")
        return {"ok": True, "useCtaConfig": True}

    def _cta_option(self, request: IntakeRequest, tenant: Tenant) -> WebhookThenMessageOption:
        """Resolve the tenant's webhook-then-message option for a CTA action.

        Only the stored option decides where the action is relayed; a
        client-supplied ``cta_webhook_url`` is ignored.
        """
        cta = tenant.config.cta
        option = None
        if isinstance(cta, CtaMultiChoice):
            option = cta.get_webhook_option(request.cta_tag)
        if option is None:
            logger.info("CTA action rejected", app_id=request.app_id, cta_tag=request.cta_tag)
            raise ValidationError("Unknown cta_tag")
        return option

    def _validate_submit(self, request: IntakeRequest, tenant: Tenant) -> None:
        allow_hidden = (
            request.consent_given is not True
            and is_consent_gated(tenant.config, tenant.questions)
        )
        try:
            validate_contact_payload(request.contact, tenant.questions, allow_hidden=allow_hidden)
        except ValidationError as e:
            logger.info(
                "Submission rejected",
                app_id=request.app_id,
                reason=e.message,
            )
            raise

    def _submit_sync(self, payload: dict[str, Any], log) -> dict[str, Any]:
        if not self.relay.configured:
            log.warning("Webhook not configured, returning placeholder result")
            return {"result": {"mode": "thank_you", "message": NO_WEBHOOK_MESSAGE}}
        try:
            response = self.relay.submit(payload)
        except WebhookUnavailableError as e:
            log.warning("Webhook unavailable", timed_out=e.timed_out, reason=e.reason)
            raise
        except UpstreamError as e:
            log.warning("Webhook returned an error", reason=e.reason)
            raise
        log.info("Submission forwarded", result_keys=sorted(response["result"]))
        return response

    def status(self, job_id: str | None) -> dict[str, Any]:
        """Poll the webhook for a job result (legacy sync mode).

        Returns:
            ``{"result": ...}`` when finished, otherwise ``{"status": "pending", "job_id": ...}``.
        """
        if not job_id or not job_id.strip():
            raise ValidationError("Missing job_id")
        job_id = job_id.strip()
        try:
            result = self.relay.poll_status(job_id)
        except (UpstreamError, WebhookUnavailableError) as e:
            logger.warning("Job status poll failed", job_id=job_id, error_code=e.error_code, reason=e.reason)
            raise
        if result is None:
            return {"status": "pending", "job_id": job_id}
        logger.info("Job finished", job_id=job_id)
        return {"result": result}
