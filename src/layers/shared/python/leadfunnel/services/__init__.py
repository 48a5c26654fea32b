"""Business logic services for lead funnels."""

from leadfunnel.services.cta_resolver import CtaResolver
from leadfunnel.services.funnel import Funnel
from leadfunnel.services.intake_client import HttpIntakeClient, IntakeClient
from leadfunnel.services.intake_service import IntakeService
from leadfunnel.services.logical_steps import (
    LogicalStep,
    compute_logical_steps,
    flatten_logical_steps,
    get_first_question_of_logical_step,
)
from leadfunnel.services.submission import SubmissionPipeline, SubmitOutcome
from leadfunnel.services.webhook import WebhookRelay

__all__ = [
    "CtaResolver",
    "Funnel",
    "HttpIntakeClient",
    "IntakeClient",
    "IntakeService",
    "LogicalStep",
    "SubmissionPipeline",
    "SubmitOutcome",
    "WebhookRelay",
    "compute_logical_steps",
    "flatten_logical_steps",
    "get_first_question_of_logical_step",
]
