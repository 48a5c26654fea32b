"""Privacy policy link and contact consent rules."""

from typing import NamedTuple

from leadfunnel.models.question import Question
from leadfunnel.models.tenant import TenantConfig

INTERNAL_POLICY_PATH = "/privacy-policy"

DEFAULT_CONSENT_LABEL = (
    "I agree to share my information in accordance with the Privacy Policy."
)


class PrivacyPolicyLink(NamedTuple):
    href: str
    open_in_new_tab: bool = True


def get_privacy_policy_link(config: TenantConfig | None) -> PrivacyPolicyLink | None:
    """Link for the consent checkbox, or None when no policy is configured.

    Handles both the ``{mode, content, url}`` shape and the legacy
    ``{enabled, content}`` shape.
    """
    policy = config.privacy_policy if config else None
    if policy is None:
        return None

    if policy.mode == "external":
        url = (policy.url or "").strip()
        return PrivacyPolicyLink(url) if url else None
    if policy.mode == "internal":
        content = (policy.content or "").strip()
        return PrivacyPolicyLink(INTERNAL_POLICY_PATH) if content else None

    if policy.enabled and (policy.content or "").strip():
        return PrivacyPolicyLink(INTERNAL_POLICY_PATH)
    return None


def is_consent_required(config: TenantConfig | None) -> bool:
    """Whether contact forms must ask for consent."""
    if config is None or config.privacy_policy is None:
        return False
    if config.privacy_policy.consent_required is False:
        return False
    return get_privacy_policy_link(config) is not None


def is_consent_gated(config: TenantConfig | None, questions: list[Question]) -> bool:
    """Whether contact values are redacted until consent is given.

    Requires a consent policy and at least one contact question that shows
    the consent checkbox.
    """
    if not is_consent_required(config):
        return False
    return any(q.is_contact and q.show_consent_under for q in questions)


def get_contact_consent_label(config: TenantConfig | None) -> str:
    """Consent checkbox label. "Privacy Policy" in the text becomes the link."""
    label = (config.contact_consent_label or "").strip() if config else ""
    return label or DEFAULT_CONSENT_LABEL
