"""Resolution of the tenant's CTA into a renderable view."""

from typing import Any, Callable

import structlog

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
    VideoDirectOption,
    VideoSubChoiceOption,
    VideoView,
    WebhookThenMessageOption,
)

logger = structlog.get_logger()

DEFAULT_THANK_YOU_MESSAGE = "Thank you! We'll be in touch."

WebhookCallback = Callable[[WebhookThenMessageOption], None]


def _fallback(value: str | None, default: str | None) -> str | None:
    """None falls back to the default; an empty string hides the text."""
    if value is None:
        value = default
    return value or None


class CtaResolver:
    """Turns CTA selections into views.

    Args:
        cta: The tenant's CTA config (None shows a thank-you message).
        default_message: Thank-you text when the config has none.
        on_webhook_action: Called for webhook_then_message options before the
            thank-you view is returned.
    """

    def __init__(
        self,
        cta: CtaConfig | None,
        default_message: str | None = None,
        on_webhook_action: WebhookCallback | None = None,
    ):
        self.cta = cta
        self.default_message = default_message or DEFAULT_THANK_YOU_MESSAGE
        self.on_webhook_action = on_webhook_action

    @property
    def multi_choice(self) -> CtaMultiChoice | None:
        return self.cta if isinstance(self.cta, CtaMultiChoice) else None

    def initial_view(self) -> ResolvedView | None:
        """View shown right after submission.

        Returns None for a multi_choice CTA, whose options are shown instead.
        """
        cta = self.cta
        if cta is None or isinstance(cta, CtaThankYou):
            message = cta.message if cta is not None else None
            return ThankYouView(message=message or self.default_message)
        if isinstance(cta, CtaLink):
            return LinkView(label=cta.label, url=cta.url, open_in_new_tab=cta.open_in_new_tab)
        if isinstance(cta, CtaEmbed):
            return EmbedView(
                url=cta.url,
                title=cta.title,
                subtitle=cta.subtitle,
                text_below=cta.text_below,
                button=cta.button,
            )
        if isinstance(cta, CtaMultiChoice):
            return None
        raise TypeError(f"Unknown CTA type: {type(cta).__name__}")

    def get_option(self, option_id: str) -> CtaOption:
        """Look up a multi-choice option.

        Raises:
            KeyError: If the CTA is not multi_choice or has no such option.
        """
        option = self.multi_choice.get_option(option_id) if self.multi_choice else None
        if option is None:
            raise KeyError(option_id)
        return option

    def picker_for(self, option: VideoSubChoiceOption) -> SubChoicePicker:
        """Intermediate picker, falling back to the main CTA's text."""
        main = self.multi_choice or CtaMultiChoice()
        return SubChoicePicker(
            option_id=option.id,
            title=_fallback(option.title, main.title),
            subheading=_fallback(option.subheading, main.subheading),
            prompt=option.prompt if option.prompt is not None else main.prompt,
            image_url=option.image_url if option.image_url is not None else main.image_url,
            choice_labels=[choice.label for choice in option.choices],
        )

    def resolve(
        self,
        option: CtaOption,
        sub_choice_index: int | None = None,
    ) -> ResolvedView | Navigation | SubChoicePicker:
        """Resolve a multi-choice selection.

        Args:
            option: The selected option.
            sub_choice_index: For sub_choice video options, the picked choice.
                Without it the picker is returned.

        Raises:
            IndexError: If sub_choice_index is out of range.
        """
        if isinstance(option, LinkOption):
            return Navigation(url=option.url, open_in_new_tab=option.open_in_new_tab)

        if isinstance(option, VideoDirectOption):
            return VideoView(
                video_url=option.video_url,
                title=option.title,
                subtitle=option.subtitle,
                button=option.button,
            )

        if isinstance(option, VideoSubChoiceOption):
            if sub_choice_index is None:
                return self.picker_for(option)
            if not 0 <= sub_choice_index < len(option.choices):
                raise IndexError(f"Option {option.id} has no choice {sub_choice_index}")
            choice = option.choices[sub_choice_index]
            return VideoView(
                video_url=choice.video_url,
                title=choice.title,
                subtitle=choice.subtitle,
                button=choice.button,
            )

        if isinstance(option, DiscountOption):
            return DiscountView(
                title=option.title or option.label,
                description=option.description,
                link_url=option.link_url,
                link_label=option.link_label or "Get offer",
                code=option.code,
            )

        if isinstance(option, WebhookThenMessageOption):
            if self.on_webhook_action is not None:
                try:
                    self.on_webhook_action(option)
                except Exception as e:
                    logger.warning("CTA webhook action failed", option_id=option.id, error=str(e))
            return ThankYouView(
                message=option.thank_you_message or self.default_message,
                header=option.thank_you_header,
                subheading=option.thank_you_subheading,
            )

        raise TypeError(f"Unknown CTA option: {type(option).__name__}")

    def view_from_result(self, result: dict[str, Any]) -> ResolvedView | None:
        """Map a webhook result (legacy sync mode) to a view.

        Returns None for a pending ``job_id`` marker.
        """
        if "job_id" in result:
            return None
        mode = result.get("mode")
        if mode == "thank_you":
            return ThankYouView(message=result.get("message") or self.default_message)
        if mode == "link":
            return LinkView(label=result["label"], url=result["url"])
        if mode == "embed":
            if result.get("url"):
                return EmbedView(
                    url=result["url"],
                    title=result.get("title"),
                    subtitle=result.get("subtitle"),
                    text_below=result.get("textBelow"),
                    button=result.get("button"),
                )
            return EmbedHtmlView(html=result.get("html") or "")
        raise ValueError(f"Unknown result mode: {mode}")
