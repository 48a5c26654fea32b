"""Tests for the public funnel handler (host-resolved, no auth)."""

import json

import pytest

from leadfunnel.models.tenant import Tenant, TenantConfig
from leadfunnel.repositories.tenant import TenantRepository


def _parse_body(response: dict) -> dict:
    return json.loads(response["body"])


def host_event(api_gateway_event, host, path="/public/funnel", **headers):
    return api_gateway_event("GET", path, headers={"Host": host, **headers})


@pytest.fixture
def tenant(dynamodb_table, sample_tenant):
    return TenantRepository().create_tenant(sample_tenant, domain="funnel.example.com")


class TestGetFunnel:
    """GET /public/funnel."""

    def test_resolves_tenant_by_host(self, tenant, api_gateway_event):
        from api.public_funnel import handler

        response = handler(host_event(api_gateway_event, "funnel.example.com"), None)
        body = _parse_body(response)

        assert response["statusCode"] == 200
        assert body["app_id"] == tenant.id
        assert body["name"] == "Test Tenant"
        assert body["config"]["steps"] == ["hero", "questions", "result"]
        assert body["config"]["cta"] == {"type": "thank_you", "message": "Thanks!"}
        assert [q["id"] for q in body["questions"]] == ["q1", "email"]
        assert body["questions"][1]["contactKind"] == "email"
        assert body["logical_step_count"] == 2

    def test_host_is_normalized(self, tenant, api_gateway_event):
        """Port and case are ignored; X-Forwarded-Host wins over Host."""
        from api.public_funnel import handler

        event = api_gateway_event(
            "GET",
            "/public/funnel",
            headers={"host": "cdn.internal", "x-forwarded-host": "Funnel.Example.com:8443"},
        )
        response = handler(event, None)

        assert response["statusCode"] == 200
        assert _parse_body(response)["app_id"] == tenant.id

    def test_unknown_host_returns_not_set_up_page(self, tenant, api_gateway_event):
        from api.public_funnel import handler

        response = handler(host_event(api_gateway_event, "nobody.example.com"), None)

        assert response["statusCode"] == 404
        assert response["headers"]["Content-Type"].startswith("text/html")
        assert "Form not set up" in response["body"]
        assert "contact the site administrator" in response["body"]

    def test_missing_host(self, dynamodb_table, api_gateway_event):
        from api.public_funnel import handler

        response = handler(api_gateway_event("GET", "/public/funnel", headers={}), None)

        assert response["statusCode"] == 404
        assert "Form not set up" in response["body"]

    def test_privacy_block(self, dynamodb_table, api_gateway_event):
        """Consent flags reflect the policy and contact question settings."""
        from api.public_funnel import handler

        repo = TenantRepository()
        repo.create_tenant(
            Tenant(
                name="Consent",
                config=TenantConfig.model_validate(
                    {
                        "privacyPolicy": {"mode": "internal", "content": "# Privacy"},
                        "contactConsentLabel": "Yes, contact me. See Privacy Policy.",
                    }
                ),
                questions=[{"id": "phone", "type": "contact", "contactKind": "tel", "showConsentUnder": True}],
            ),
            domain="consent.example.com",
        )

        response = handler(host_event(api_gateway_event, "consent.example.com"), None)
        privacy = _parse_body(response)["privacy"]

        assert privacy == {
            "link": {"href": "/privacy-policy", "openInNewTab": True},
            "consentRequired": True,
            "consentGated": True,
            "consentLabel": "Yes, contact me. See Privacy Policy.",
        }

    def test_no_privacy_policy(self, tenant, api_gateway_event):
        from api.public_funnel import handler

        response = handler(host_event(api_gateway_event, "funnel.example.com"), None)
        privacy = _parse_body(response)["privacy"]

        assert privacy["link"] is None
        assert privacy["consentRequired"] is False
        assert privacy["consentGated"] is False


class TestGetPrivacyPolicy:
    """GET /public/privacy-policy."""

    @pytest.mark.parametrize(
        "policy",
        [
            {"mode": "internal", "content": "# Our policy"},
            {"enabled": True, "content": "# Our policy"},
        ],
    )
    def test_internal_policy(self, dynamodb_table, api_gateway_event, policy):
        from api.public_funnel import handler

        TenantRepository().create_tenant(
            Tenant(
                name="Policy Co",
                config=TenantConfig.model_validate({"privacyPolicy": policy}),
            ),
            domain="policy.example.com",
        )

        response = handler(
            host_event(api_gateway_event, "policy.example.com", path="/public/privacy-policy"),
            None,
        )

        assert response["statusCode"] == 200
        assert _parse_body(response) == {"title": "Policy Co", "content": "# Our policy"}

    @pytest.mark.parametrize(
        "policy",
        [
            {"mode": "external", "url": "https://example.com/privacy", "content": "ignored"},
            {"mode": "internal", "content": "   "},
            {"enabled": False, "content": "# Old"},
        ],
    )
    def test_no_internal_policy(self, dynamodb_table, api_gateway_event, policy):
        from api.public_funnel import handler

        TenantRepository().create_tenant(
            Tenant(config=TenantConfig.model_validate({"privacyPolicy": policy})),
            domain="policy.example.com",
        )

        response = handler(
            host_event(api_gateway_event, "policy.example.com", path="/public/privacy-policy"),
            None,
        )

        assert response["statusCode"] == 404
        assert _parse_body(response)["error_code"] == "not_found"


class TestRouting:
    def test_post_not_allowed(self, api_gateway_event):
        from api.public_funnel import handler

        response = handler(api_gateway_event("POST", "/public/funnel"), None)

        assert response["statusCode"] == 404

    def test_unknown_path(self, tenant, api_gateway_event):
        from api.public_funnel import handler

        response = handler(host_event(api_gateway_event, "funnel.example.com", path="/public/other"), None)

        assert response["statusCode"] == 404
