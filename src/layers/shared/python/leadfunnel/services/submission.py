"""Submission pipeline: payload assembly, consent redaction, validation."""

from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from leadfunnel.models.base import utc_now
from leadfunnel.models.question import Question
from leadfunnel.models.tenant import TenantConfig
from leadfunnel.services.contact_payload import (
    answers_by_question_text,
    build_contact_payload,
    redact_contact,
)
from leadfunnel.services.intake_client import IntakeClient
from leadfunnel.services.privacy_policy import is_consent_gated
from leadfunnel.services.validation import validate_contact_value
from leadfunnel.utils.exceptions import UpstreamError, ValidationError

logger = structlog.get_logger()

Answers = Mapping[str, str | list[str]]


@dataclass
class SubmitOutcome:
    """What the intake API told the funnel to show.

    ``use_cta_config`` means render the tenant's configured CTA; otherwise
    ``result`` holds the webhook result (legacy sync mode).
    """

    use_cta_config: bool = False
    result: dict[str, Any] | None = None
    message: str | None = None


class SubmissionPipeline:
    """Builds and sends progress, submit and CTA-action payloads for one funnel."""

    def __init__(
        self,
        app_id: str,
        config: TenantConfig,
        questions: list[Question],
        client: IntakeClient,
        session_id: str,
        utm: Mapping[str, str] | None = None,
    ):
        self.app_id = app_id
        self.config = config
        self.questions = questions
        self.client = client
        self.session_id = session_id
        self.utm = dict(utm or {})
        self.consent_gated = is_consent_gated(config, questions)

    def should_redact(self, consent_given: bool | None) -> bool:
        return self.consent_gated and consent_given is not True

    def build_payload(
        self,
        event: str,
        answers: Answers,
        consent_given: bool | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        """Assemble an intake payload.

        Answers are keyed by question text and contact answers by canonical
        key. Contact values are redacted here, at the transmission boundary,
        when consent is required and was not given; ``answers`` is not touched.

        Args:
            event: "progress" or "submit".
            answers: Answers keyed by question id.
            consent_given: State of the consent checkbox, if shown.
            **fields: Extra payload fields (step, question_index, cta_tag, ...).
                None values are dropped.
        """
        contact = build_contact_payload(self.questions, answers)
        if self.should_redact(consent_given):
            contact = redact_contact(contact)

        payload: dict[str, Any] = {
            "app_id": self.app_id,
            "event": event,
            "timestamp": utc_now().isoformat(),
            "session_id": self.session_id,
            "answers": answers_by_question_text(self.questions, answers),
            "contact": contact,
            "utm": dict(self.utm),
        }
        if consent_given is not None:
            payload["consent_given"] = consent_given
        payload.update({k: v for k, v in fields.items() if v is not None})
        return payload

    def validate(self, answers: Answers, step: list[Question] | None = None) -> dict[str, str]:
        """Validate contact questions.

        Args:
            answers: Answers keyed by question id.
            step: Questions to check. Defaults to every question.

        Returns:
            Inline error messages keyed by question id (empty if valid).
        """
        errors: dict[str, str] = {}
        for question in step if step is not None else self.questions:
            if not question.is_contact:
                continue
            value = answers.get(question.id)
            message = validate_contact_value(question, value if isinstance(value, str) else None)
            if message:
                errors[question.id] = message
        return errors

    def send_progress(
        self,
        step: str,
        answers: Answers,
        question_index: int | None = None,
        question_id: str | None = None,
        question_text: str | None = None,
        consent_given: bool | None = None,
    ) -> None:
        """Send a progress beacon. Never raises."""
        try:
            payload = self.build_payload(
                "progress",
                answers,
                consent_given,
                step=step,
                question_index=question_index,
                question_id=question_id,
                step_question=question_text,
            )
            self.client.send(payload)
        except Exception as e:
            logger.debug("Progress beacon dropped", app_id=self.app_id, error=str(e))

    def submit(self, answers: Answers, consent_given: bool | None = None) -> SubmitOutcome:
        """Validate and send the final submission.

        Raises:
            ValidationError: A contact field failed its rule; nothing was sent.
            FunnelError: The intake API rejected the submission.
        """
        errors = self.validate(answers)
        if errors:
            raise ValidationError(
                "Please check the highlighted fields.",
                errors=[{"field": qid, "message": msg} for qid, msg in errors.items()],
            )

        response = self.client.submit(self.build_payload("submit", answers, consent_given))
        if response.get("useCtaConfig"):
            return SubmitOutcome(use_cta_config=True)
        if isinstance(response.get("result"), dict):
            return SubmitOutcome(result=response["result"], message=response.get("message"))
        if response.get("ok"):
            return SubmitOutcome(use_cta_config=True)
        raise UpstreamError(reason="Unrecognised intake response")

    def send_cta_action(
        self,
        answers: Answers,
        consent_given: bool | None,
        tag: str,
        webhook_url: str | None = None,
    ) -> None:
        """Relay a webhook_then_message CTA selection. Never raises."""
        try:
            payload = self.build_payload(
                "submit",
                answers,
                consent_given,
                cta_tag=tag,
                cta_webhook_url=webhook_url or None,
            )
            self.client.send(payload)
        except Exception as e:
            logger.debug("CTA action dropped", app_id=self.app_id, cta_tag=tag, error=str(e))
