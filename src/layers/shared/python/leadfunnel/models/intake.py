"""Intake API wire models."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel as PydanticBaseModel
from pydantic import (
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    field_validator,
)

from leadfunnel.models.base import utc_now

IntakeEvent = Literal["progress", "submit"]

UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")


class IntakeRequest(PydanticBaseModel):
    """Progress or submit event posted by a funnel.

    Parsed strictly at the API boundary: wrong types are rejected, unknown keys
    are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    app_id: StrictStr = Field(..., min_length=1, description="Tenant ID")
    event: IntakeEvent
    timestamp: StrictStr = Field(default_factory=lambda: utc_now().isoformat())
    session_id: StrictStr | None = None
    answers: dict[str, StrictStr | list[StrictStr]]
    contact: dict[str, StrictStr]
    utm: dict[str, StrictStr] = Field(default_factory=dict)

    # Progress fields
    step: StrictStr | StrictInt | None = None
    question_index: StrictInt | None = None
    question_id: StrictStr | None = None
    step_question: StrictStr | None = None

    consent_given: StrictBool | None = None

    # Post-result CTA action (webhook_then_message)
    cta_tag: StrictStr | None = None
    cta_webhook_url: StrictStr | None = None

    @field_validator("session_id", "cta_tag", "cta_webhook_url")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def is_cta_action(self) -> bool:
        return self.event == "submit" and self.cta_tag is not None

    def to_webhook_payload(self) -> dict:
        """Body forwarded to the automation webhook."""
        payload = self.model_dump(mode="json", exclude_none=True)
        payload.pop("cta_webhook_url", None)
        return payload


class ThankYouResult(PydanticBaseModel):
    mode: Literal["thank_you"]
    message: str | None = None


class LinkResult(PydanticBaseModel):
    mode: Literal["link"]
    label: str
    url: str


class EmbedButton(PydanticBaseModel):
    label: str
    url: str


class EmbedResult(PydanticBaseModel):
    """Embed result: a URL with optional copy, or legacy raw ``html``."""

    mode: Literal["embed"]
    url: str | None = None
    html: str | None = None
    title: str | None = None
    subtitle: str | None = None
    text_below: str | None = Field(None, alias="textBelow")
    button: EmbedButton | None = None

    model_config = ConfigDict(populate_by_name=True)


class JobResult(PydanticBaseModel):
    job_id: str


IntakeResult = Union[
    Annotated[Union[ThankYouResult, LinkResult, EmbedResult], Field(discriminator="mode")],
    JobResult,
]


class IntakeResponseEnvelope(PydanticBaseModel):
    """Envelope returned by the automation webhook in synchronous mode."""

    status: Literal["ok", "error"] = "ok"
    message: str | None = None
    result: dict | None = None
