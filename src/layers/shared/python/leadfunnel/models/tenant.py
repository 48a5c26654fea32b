"""Tenant model - one customer's configured funnel."""

from enum import Enum
from typing import Literal

from pydantic import Field, field_validator

from leadfunnel.models.base import BaseModel, CamelModel
from leadfunnel.models.cta import CtaConfig
from leadfunnel.models.question import Question


class FlowStep(str, Enum):
    """Top-level funnel steps. ``contact`` is the legacy standalone contact step."""

    HERO = "hero"
    QUESTIONS = "questions"
    CONTACT = "contact"
    RESULT = "result"


class SubmissionMode(str, Enum):
    """How a submit is relayed to the automation webhook.

    RELAY: fire-and-forget, the funnel renders the tenant's configured CTA.
    SYNC: legacy; wait for the webhook and render what it returns.
    """

    RELAY = "relay"
    SYNC = "sync"


class SessionScope(str, Enum):
    """Lifetime of the session id attached to progress/submit calls.

    TAB: one id per browser tab, survives reloads (cross-reload correlation).
    LOAD: fresh id per page load (no stale sessions).
    """

    TAB = "tab"
    LOAD = "load"


class Theme(CamelModel):
    primary_color: str = "#4a6b5a"
    background: str = "#0d1f18"
    font_family: str = "var(--font-sans)"
    layout: str = "centered"


class HeroConfig(CamelModel):
    title: str | None = None
    body: list[str] = Field(default_factory=list)
    cta_label: str = ""
    button_label: str | None = None
    logo_url: str | None = None
    image_url: str | None = None
    footer_text: str | None = None


class AnnouncementConfig(CamelModel):
    enabled: bool = False
    message: str = ""
    background_color: str = "#c41e3a"
    text_color: str = "#ffffff"
    scope: Literal["hero", "full"] = "hero"


class PrivacyPolicyConfig(CamelModel):
    """Privacy policy settings.

    New shape: ``mode`` internal (markdown ``content``) or external (``url``).
    Legacy shape: ``enabled`` + ``content``.
    """

    mode: Literal["internal", "external"] | None = None
    content: str | None = None
    url: str | None = None
    enabled: bool | None = None
    consent_required: bool | None = None


class TenantConfig(CamelModel):
    """Tenant-authored funnel configuration (stored as JSON)."""

    theme: Theme = Field(default_factory=Theme)
    steps: list[FlowStep] = Field(
        default_factory=lambda: [FlowStep.HERO, FlowStep.QUESTIONS, FlowStep.RESULT]
    )
    site_title: str | None = None
    favicon_url: str | None = None
    hero: HeroConfig | None = None
    default_thank_you_message: str | None = None
    text_question_button_label: str | None = None
    cta: CtaConfig | None = None
    privacy_policy: PrivacyPolicyConfig | None = None
    contact_consent_label: str | None = None
    announcement: AnnouncementConfig | None = None
    submission_mode: SubmissionMode = SubmissionMode.RELAY
    session_scope: SessionScope = SessionScope.LOAD

    @field_validator("steps")
    @classmethod
    def steps_not_empty(cls, value: list[FlowStep]) -> list[FlowStep]:
        return value or [FlowStep.HERO, FlowStep.QUESTIONS, FlowStep.RESULT]


class Tenant(BaseModel):
    """Tenant entity.

    Key Pattern:
        PK: TENANT#{id}
        SK: META
    """

    name: str | None = Field(None, max_length=255, description="Display name")
    config: TenantConfig = Field(default_factory=TenantConfig)
    questions: list[Question] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def questions_unique(cls, value: list[Question]) -> list[Question]:
        seen: set[str] = set()
        for question in value:
            if question.id in seen:
                raise ValueError(f"Duplicate question id: {question.id}")
            seen.add(question.id)
        return value

    def get_pk(self) -> str:
        """Get partition key: TENANT#{id}."""
        return f"TENANT#{self.id}"

    def get_sk(self) -> str:
        """Get sort key: META."""
        return "META"

    def contact_questions(self) -> list[Question]:
        return [q for q in self.questions if q.is_contact]


class TenantDomain(BaseModel):
    """Maps a request host to a tenant.

    Key Pattern:
        PK: DOMAIN#{domain}
        SK: TENANT#{tenant_id}
        GSI1PK: TENANT#{tenant_id}#DOMAINS
        GSI1SK: {domain}
    """

    tenant_id: str = Field(..., description="Owning tenant ID")
    domain: str = Field(..., min_length=1, max_length=253, description="Host name")
    is_primary: bool = Field(default=False)

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, value: str) -> str:
        return normalize_host(value)

    def get_pk(self) -> str:
        """Get partition key: DOMAIN#{domain}."""
        return f"DOMAIN#{self.domain}"

    def get_sk(self) -> str:
        """Get sort key: TENANT#{tenant_id}."""
        return f"TENANT#{self.tenant_id}"

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for listing domains by tenant."""
        return {
            "GSI1PK": f"TENANT#{self.tenant_id}#DOMAINS",
            "GSI1SK": self.domain,
        }


def normalize_host(host: str) -> str:
    """Lower-case a host header value and strip any port."""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. [::1]:3000
        return host.split("]", 1)[0] + "]"
    return host.split(":", 1)[0]
