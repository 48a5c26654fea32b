"""Public funnel handler: resolves the tenant from the request host."""

from typing import Any

import structlog

from leadfunnel.models.tenant import Tenant
from leadfunnel.repositories.tenant import TenantRepository
from leadfunnel.services.logical_steps import compute_logical_steps
from leadfunnel.services.privacy_policy import (
    get_contact_consent_label,
    get_privacy_policy_link,
    is_consent_gated,
    is_consent_required,
)
from leadfunnel.utils.responses import error, html_page, success

logger = structlog.get_logger()

NOT_CONFIGURED_TITLE = "Form not set up"
NOT_CONFIGURED_MESSAGE = (
    "This form is not set up yet. Please check the URL or contact the site administrator."
)


def handler(event: dict[str, Any], context: Any) -> dict:
    """Handle public funnel requests (no auth required).

    Routes:
        GET /public/funnel           - Funnel bootstrap for the request host
        GET /public/privacy-policy   - Privacy policy content for the request host
    """
    try:
        http_method = event.get("httpMethod", "").upper()
        path = event.get("path", "")

        if http_method != "GET":
            return error("Not found", 404, error_code="not_found")

        host = get_request_host(event)
        if path.rstrip("/").endswith("/public/funnel"):
            return get_funnel(host)
        elif path.rstrip("/").endswith("/public/privacy-policy"):
            return get_privacy_policy(host)
        else:
            return error("Not found", 404, error_code="not_found")

    except Exception as e:
        logger.exception("Public funnel handler error", error=str(e))
        return error("Internal server error", 500)


def get_request_host(event: dict) -> str | None:
    """Host the visitor requested; X-Forwarded-Host wins behind a CDN."""
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    host = headers.get("x-forwarded-host") or headers.get("host")
    if host:
        return host.split(",")[0].strip() or None
    return None


def not_configured_page() -> dict:
    """Generic page for hosts with no tenant."""
    body = f"""<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>{NOT_CONFIGURED_TITLE}</title></head>
<body style="font-family: system-ui, sans-serif; text-align: center; padding: 50px;">
<h1>{NOT_CONFIGURED_TITLE}</h1>
<p>{NOT_CONFIGURED_MESSAGE}</p>
</body></html>"""
    return html_page(body, status_code=404)


def _resolve_tenant(host: str | None) -> Tenant | None:
    if not host:
        return None
    tenant = TenantRepository().get_by_domain(host)
    if tenant is None:
        logger.info("Unknown host", host=host)
    return tenant


def get_funnel(host: str | None) -> dict:
    """Return everything a funnel needs to render for this host."""
    tenant = _resolve_tenant(host)
    if tenant is None:
        return not_configured_page()

    link = get_privacy_policy_link(tenant.config)
    return success(
        {
            "app_id": tenant.id,
            "name": tenant.name,
            "config": tenant.config.to_json_dict(),
            "questions": [q.to_json_dict() for q in tenant.questions],
            "logical_step_count": len(compute_logical_steps(tenant.questions)),
            "privacy": {
                "link": {"href": link.href, "openInNewTab": link.open_in_new_tab} if link else None,
                "consentRequired": is_consent_required(tenant.config),
                "consentGated": is_consent_gated(tenant.config, tenant.questions),
                "consentLabel": get_contact_consent_label(tenant.config),
            },
        }
    )


def get_privacy_policy(host: str | None) -> dict:
    """Return the tenant's internal privacy policy (markdown source)."""
    tenant = _resolve_tenant(host)
    if tenant is None:
        return not_configured_page()

    policy = tenant.config.privacy_policy
    content = (policy.content or "").strip() if policy else ""
    if not content or (policy.mode is None and not policy.enabled) or policy.mode == "external":
        return error("Privacy policy not found", 404, error_code="not_found")

    return success(
        {
            "title": tenant.config.site_title or tenant.name,
            "content": content,
        }
    )
