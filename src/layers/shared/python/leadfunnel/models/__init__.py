"""Pydantic models for lead funnel entities."""

from leadfunnel.models.base import BaseModel, CamelModel
from leadfunnel.models.cta import (
    CtaConfig,
    CtaEmbed,
    CtaLink,
    CtaMultiChoice,
    CtaOption,
    CtaThankYou,
    DiscountOption,
    DiscountView,
    EmbedHtmlView,
    EmbedView,
    LinkOption,
    LinkView,
    Navigation,
    ResolvedView,
    SubChoicePicker,
    ThankYouView,
    VideoChoice,
    VideoDirectOption,
    VideoSubChoiceOption,
    VideoView,
    WebhookThenMessageOption,
)
from leadfunnel.models.intake import (
    UTM_KEYS,
    IntakeRequest,
    IntakeResponseEnvelope,
    IntakeResult,
)
from leadfunnel.models.question import ContactKind, Question, QuestionType
from leadfunnel.models.tenant import (
    FlowStep,
    PrivacyPolicyConfig,
    SessionScope,
    SubmissionMode,
    Tenant,
    TenantConfig,
    TenantDomain,
)

__all__ = [
    # Base
    "BaseModel",
    "CamelModel",
    # Question
    "ContactKind",
    "Question",
    "QuestionType",
    # CTA
    "CtaConfig",
    "CtaEmbed",
    "CtaLink",
    "CtaMultiChoice",
    "CtaOption",
    "CtaThankYou",
    "DiscountOption",
    "DiscountView",
    "EmbedHtmlView",
    "EmbedView",
    "LinkOption",
    "LinkView",
    "Navigation",
    "ResolvedView",
    "SubChoicePicker",
    "ThankYouView",
    "VideoChoice",
    "VideoDirectOption",
    "VideoSubChoiceOption",
    "VideoView",
    "WebhookThenMessageOption",
    # Intake
    "UTM_KEYS",
    "IntakeRequest",
    "IntakeResponseEnvelope",
    "IntakeResult",
    # Tenant
    "FlowStep",
    "PrivacyPolicyConfig",
    "SessionScope",
    "SubmissionMode",
    "Tenant",
    "TenantConfig",
    "TenantDomain",
]
