"""Tests for IntakeService (server-side validation and relay)."""

import json
import httpx
import pytest

from leadfunnel.models.tenant import TenantConfig
from leadfunnel.repositories.tenant import TenantRepository
from leadfunnel.services.intake_service import NO_WEBHOOK_MESSAGE, IntakeService
from leadfunnel.services.webhook import WebhookRelay
from leadfunnel.utils.exceptions import UpstreamError, ValidationError, WebhookUnavailableError

WEBHOOK_URL = "https://n8n.example.com/webhook/intake"


class Recorder:
    """MockTransport handler that records requests and returns a canned reply."""

    def __init__(self, reply=None):
        self.requests: list[httpx.Request] = []
        self.reply = reply or (lambda request: httpx.Response(200, json={"ok": True}))

    def __call__(self, request):
        self.requests.append(request)
        return self.reply(request)

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def service(dynamodb_table, sample_tenant, recorder):
    repo = TenantRepository()
    repo.create_tenant(sample_tenant)
    relay = WebhookRelay(
        url=WEBHOOK_URL,
        api_key="secret",
        client=httpx.Client(transport=httpx.MockTransport(recorder)),
    )
    return IntakeService(tenant_repo=repo, relay=relay)


def body(event="submit", **overrides):
    data = {
        "app_id": "test-tenant-123",
        "event": event,
        "timestamp": "2025-01-01T12:00:00+00:00",
        "session_id": "s-1",
        "answers": {"What describes you best?": "Option A"},
        "contact": {"email": "x@y.com"},
    }
    data.update(overrides)
    return data


class TestParse:
    def test_rejects_non_object(self, service):
        with pytest.raises(ValidationError, match="Invalid request body"):
            service.parse(["submit"])

    def test_rejects_wrong_types(self, service):
        with pytest.raises(ValidationError) as exc_info:
            service.parse(body(question_index="2"))

        assert exc_info.value.errors[0]["field"] == "question_index"

    def test_ignores_unknown_keys(self, service):
        request = service.parse(body(extra="ignored"))

        assert "extra" not in request.to_webhook_payload()


class TestRelayMode:
    def test_progress_is_relayed(self, service, recorder):
        response = service.handle(
            body(event="progress", contact={}, step="questions", question_index=0, question_id="q1")
        )

        assert response == {"ok": True}
        assert recorder.bodies[0]["event"] == "progress"
        assert recorder.bodies[0]["question_id"] == "q1"
        assert recorder.requests[0].headers["X-API-Key"] == "secret"

    def test_submit_uses_cta_config(self, service, recorder):
        response = service.handle(body())

        assert response == {"ok": True, "useCtaConfig": True}
        assert recorder.bodies[0]["contact"] == {"email": "x@y.com"}

    def test_webhook_failure_does_not_reach_submitter(self, service, recorder):
        recorder.reply = lambda request: httpx.Response(500)

        response = service.handle(body())

        assert response == {"ok": True, "useCtaConfig": True}
        assert len(recorder.requests) == 1

    def test_delivered_before_returning(self, service, recorder):
        service.handle(body())

        assert len(recorder.requests) == 1


class TestCtaAction:
    @pytest.fixture
    def cta_service(self, service, sample_tenant):
        sample_tenant.config = TenantConfig.model_validate(
            {
                "cta": {
                    "type": "multi_choice",
                    "options": [
                        {
                            "id": "call",
                            "label": "Call me",
                            "kind": "webhook_then_message",
                            "webhookTag": "callback",
                            "webhookUrl": "https://hooks.example.com/cb",
                        },
                        {
                            "id": "news",
                            "label": "Newsletter",
                            "kind": "webhook_then_message",
                            "webhookTag": "newsletter",
                        },
                        {"id": "site", "label": "Website", "kind": "link", "url": "https://x.io"},
                    ],
                }
            }
        )
        service.tenant_repo.update_tenant(sample_tenant)
        return service

    def test_goes_to_stored_option_url(self, cta_service, recorder):
        response = cta_service.handle(body(cta_tag="callback"))

        assert response == {"ok": True}
        assert str(recorder.requests[0].url) == "https://hooks.example.com/cb"
        assert recorder.bodies[0]["cta_tag"] == "callback"

    def test_client_url_is_ignored(self, cta_service, recorder):
        cta_service.handle(body(cta_tag="callback", cta_webhook_url="http://169.254.169.254/latest"))

        assert [str(r.url) for r in recorder.requests] == ["https://hooks.example.com/cb"]
        assert "cta_webhook_url" not in recorder.bodies[0]

    def test_api_key_only_sent_to_default_webhook(self, cta_service, recorder):
        cta_service.handle(body(cta_tag="callback"))
        cta_service.handle(body(cta_tag="newsletter"))

        option_request, default_request = recorder.requests
        assert "X-API-Key" not in option_request.headers
        assert str(default_request.url) == WEBHOOK_URL
        assert default_request.headers["X-API-Key"] == "secret"

    @pytest.mark.parametrize("tag", ["unknown", "site"])
    def test_unknown_tag_rejected(self, cta_service, recorder, tag):
        with pytest.raises(ValidationError, match="Unknown cta_tag"):
            cta_service.handle(body(cta_tag=tag, cta_webhook_url="https://other.example.com"))

        assert recorder.requests == []

    def test_rejected_without_multi_choice_cta(self, service, recorder):
        with pytest.raises(ValidationError, match="Unknown cta_tag"):
            service.handle(body(cta_tag="callback"))

        assert recorder.requests == []


class TestClose:
    def test_leaves_injected_client_open(self, service):
        with service:
            pass

        assert not service.relay.client.is_closed

    def test_closes_owned_client(self, dynamodb_table):
        service = IntakeService(relay=WebhookRelay(url=WEBHOOK_URL))
        client = service.relay.client

        with service:
            pass

        assert client.is_closed


class TestSubmitValidation:
    def test_unknown_app_id(self, service):
        with pytest.raises(ValidationError, match="Unknown app_id"):
            service.handle(body(app_id="nope"))

    @pytest.mark.parametrize("contact", [{}, {"email": "  "}])
    def test_missing_required_contact(self, service, contact):
        with pytest.raises(ValidationError, match="Missing required field: email"):
            service.handle(body(contact=contact))

    def test_invalid_email(self, service, recorder):
        with pytest.raises(ValidationError) as exc_info:
            service.handle(body(contact={"email": "a@b"}))

        assert exc_info.value.errors == [{"field": "email", "message": "Please enter a valid email."}]
        assert recorder.requests == []

    def test_hidden_rejected_when_not_gated(self, service):
        with pytest.raises(ValidationError, match="Invalid email address"):
            service.handle(body(contact={"email": "hidden"}))

    def test_hidden_allowed_when_gated(self, service, sample_tenant, consent_config):
        sample_tenant.config = consent_config
        sample_tenant.questions[1].show_consent_under = True
        service.tenant_repo.update_tenant(sample_tenant)

        response = service.handle(body(contact={"email": "hidden"}, consent_given=False))

        assert response == {"ok": True, "useCtaConfig": True}

    def test_hidden_rejected_once_consent_given(self, service, sample_tenant, consent_config):
        sample_tenant.config = consent_config
        sample_tenant.questions[1].show_consent_under = True
        service.tenant_repo.update_tenant(sample_tenant)

        with pytest.raises(ValidationError):
            service.handle(body(contact={"email": "hidden"}, consent_given=True))


class TestSyncMode:
    @pytest.fixture
    def sync_service(self, service, sample_tenant):
        sample_tenant.config = TenantConfig.model_validate({"submissionMode": "sync"})
        service.tenant_repo.update_tenant(sample_tenant)
        return service

    def test_returns_normalised_result(self, sync_service, recorder):
        recorder.reply = lambda request: httpx.Response(
            200, json={"status": "ok", "result": {"mode": "link", "label": "Book", "url": "https://x.io"}}
        )

        response = sync_service.handle(body())

        assert response["result"] == {"mode": "link", "label": "Book", "url": "https://x.io"}

    def test_error_envelope(self, sync_service, recorder):
        recorder.reply = lambda request: httpx.Response(200, json={"status": "error", "message": "No"})

        with pytest.raises(UpstreamError):
            sync_service.handle(body())

    def test_timeout(self, sync_service, recorder):
        def timeout(request):
            raise httpx.ReadTimeout("timed out", request=request)

        recorder.reply = timeout

        with pytest.raises(WebhookUnavailableError) as exc_info:
            sync_service.handle(body())

        assert exc_info.value.timed_out is True

    def test_placeholder_without_webhook(self, sync_service):
        sync_service.relay = WebhookRelay(url="")

        response = sync_service.handle(body())

        assert response == {"result": {"mode": "thank_you", "message": NO_WEBHOOK_MESSAGE}}


class TestStatus:
    @pytest.mark.parametrize("job_id", [None, "", "   "])
    def test_missing_job_id(self, service, job_id):
        with pytest.raises(ValidationError, match="Missing job_id"):
            service.status(job_id)

    def test_pending(self, service, recorder):
        recorder.reply = lambda request: httpx.Response(200, json={"result": {"job_id": "job-1"}})

        assert service.status(" job-1 ") == {"status": "pending", "job_id": "job-1"}
        assert recorder.bodies == [{"job_id": "job-1"}]

    def test_finished(self, service, recorder):
        recorder.reply = lambda request: httpx.Response(
            200, json={"status": "ok", "result": {"mode": "thank_you", "message": "Done"}}
        )

        assert service.status("job-1") == {"result": {"mode": "thank_you", "message": "Done"}}
