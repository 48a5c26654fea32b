"""Call-to-action models shown after a successful submission.

The CTA tree is authored in the dashboard and stored on the tenant record:

    CtaConfig     thank_you | link | embed | multi_choice
    CtaOption     embed_video (direct | sub_choice) | discount_code
                  | webhook_then_message | link

Resolving a selection produces one of the ``ResolvedView`` variants.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import Discriminator, Field, Tag, TypeAdapter

from leadfunnel.models.base import CamelModel


class CtaButton(CamelModel):
    """Button rendered under an embed."""

    label: str
    url: str
    color: str | None = None


# ---------------------------------------------------------------------------
# Top-level CTA variants
# ---------------------------------------------------------------------------


class CtaThankYou(CamelModel):
    type: Literal["thank_you"] = "thank_you"
    message: str | None = None


class CtaLink(CamelModel):
    type: Literal["link"] = "link"
    label: str
    url: str
    open_in_new_tab: bool = False


class CtaEmbed(CamelModel):
    type: Literal["embed"] = "embed"
    url: str
    title: str | None = None
    subtitle: str | None = None
    text_below: str | None = None
    button: CtaButton | None = None


# ---------------------------------------------------------------------------
# Multi-choice options
# ---------------------------------------------------------------------------


class VideoChoice(CamelModel):
    """One entry of a sub-choice video picker."""

    label: str
    video_url: str
    title: str | None = None
    subtitle: str | None = None
    button: CtaButton | None = None


class VideoDirectOption(CamelModel):
    id: str
    label: str
    kind: Literal["embed_video"] = "embed_video"
    variant: Literal["direct"] = "direct"
    video_url: str = ""
    title: str | None = None
    subtitle: str | None = None
    button: CtaButton | None = None


class VideoSubChoiceOption(CamelModel):
    """Video option that first shows a picker of ``choices``.

    ``title``/``subheading``: None falls back to the main CTA text, "" hides it.
    ``prompt``/``image_url``: None falls back to the main CTA values.
    """

    id: str
    label: str
    kind: Literal["embed_video"] = "embed_video"
    variant: Literal["sub_choice"] = "sub_choice"
    title: str | None = None
    subheading: str | None = None
    prompt: str | None = None
    image_url: str | None = None
    choices: list[VideoChoice] = Field(default_factory=list)


class DiscountOption(CamelModel):
    id: str
    label: str
    kind: Literal["discount_code"] = "discount_code"
    title: str = ""
    description: str | None = None
    link_url: str = ""
    link_label: str | None = None
    code: str = ""


class WebhookThenMessageOption(CamelModel):
    id: str
    label: str
    kind: Literal["webhook_then_message"] = "webhook_then_message"
    webhook_tag: str
    thank_you_message: str = ""
    thank_you_header: str | None = None
    thank_you_subheading: str | None = None
    webhook_url: str | None = None


class LinkOption(CamelModel):
    id: str
    label: str
    kind: Literal["link"] = "link"
    url: str
    open_in_new_tab: bool = False


def _option_tag(value: Any) -> str | None:
    """Discriminate options by kind, and video options by variant."""
    if isinstance(value, dict):
        kind = value.get("kind")
        variant = value.get("variant")
    else:
        kind = getattr(value, "kind", None)
        variant = getattr(value, "variant", None)
    if kind == "embed_video":
        return "embed_video:sub_choice" if variant == "sub_choice" else "embed_video:direct"
    return kind


CtaOption = Annotated[
    Union[
        Annotated[VideoDirectOption, Tag("embed_video:direct")],
        Annotated[VideoSubChoiceOption, Tag("embed_video:sub_choice")],
        Annotated[DiscountOption, Tag("discount_code")],
        Annotated[WebhookThenMessageOption, Tag("webhook_then_message")],
        Annotated[LinkOption, Tag("link")],
    ],
    Discriminator(_option_tag),
]


class CtaMultiChoice(CamelModel):
    type: Literal["multi_choice"] = "multi_choice"
    title: str | None = None
    subheading: str | None = None
    prompt: str | None = None
    image_url: str | None = None
    options: list[CtaOption] = Field(default_factory=list)

    def get_option(self, option_id: str) -> CtaOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def get_webhook_option(self, tag: str) -> WebhookThenMessageOption | None:
        """Find the webhook-then-message option relaying under ``tag``."""
        for option in self.options:
            if isinstance(option, WebhookThenMessageOption) and option.webhook_tag == tag:
                return option
        return None


CtaConfig = Annotated[
    Union[CtaThankYou, CtaLink, CtaEmbed, CtaMultiChoice],
    Field(discriminator="type"),
]

cta_config_adapter: TypeAdapter[CtaConfig] = TypeAdapter(CtaConfig)
cta_option_adapter: TypeAdapter[CtaOption] = TypeAdapter(CtaOption)


# ---------------------------------------------------------------------------
# Resolved views
# ---------------------------------------------------------------------------


class ThankYouView(CamelModel):
    kind: Literal["thank_you"] = "thank_you"
    message: str
    header: str | None = None
    subheading: str | None = None


class LinkView(CamelModel):
    kind: Literal["link"] = "link"
    label: str
    url: str
    open_in_new_tab: bool = False


class EmbedView(CamelModel):
    kind: Literal["embed"] = "embed"
    url: str
    title: str | None = None
    subtitle: str | None = None
    text_below: str | None = None
    button: CtaButton | None = None


class EmbedHtmlView(CamelModel):
    """Legacy raw-HTML embed returned by the webhook."""

    kind: Literal["embed_html"] = "embed_html"
    html: str


class DiscountView(CamelModel):
    kind: Literal["discount"] = "discount"
    title: str
    description: str | None = None
    link_url: str
    link_label: str = "Get offer"
    code: str


class VideoView(CamelModel):
    kind: Literal["embed_video"] = "embed_video"
    video_url: str
    title: str | None = None
    subtitle: str | None = None
    button: CtaButton | None = None


ResolvedView = Annotated[
    Union[ThankYouView, LinkView, EmbedView, EmbedHtmlView, DiscountView, VideoView],
    Field(discriminator="kind"),
]


class Navigation(CamelModel):
    """Outcome of a link option: the browser navigates away, nothing renders."""

    kind: Literal["navigate"] = "navigate"
    url: str
    open_in_new_tab: bool = False


class SubChoicePicker(CamelModel):
    """Intermediate screen of an embed_video/sub_choice option."""

    kind: Literal["sub_choice"] = "sub_choice"
    option_id: str
    title: str | None = None
    subheading: str | None = None
    prompt: str | None = None
    image_url: str | None = None
    choice_labels: list[str] = Field(default_factory=list)
