"""Funnel state machine: hero, logical question steps, then result.

One ``Funnel`` owns all the state of one visit. Progress beacons go out on
forward moves only and are labelled with the step the user reached. Back
navigation never emits anything.
"""

import time
import uuid
from typing import Any, Callable, Mapping, MutableMapping
from urllib.parse import parse_qsl

import structlog

from leadfunnel.models.cta import (
    CtaOption,
    Navigation,
    ResolvedView,
    SubChoicePicker,
    VideoSubChoiceOption,
    WebhookThenMessageOption,
)
from leadfunnel.models.intake import UTM_KEYS
from leadfunnel.models.question import Question, QuestionType
from leadfunnel.models.tenant import FlowStep, SessionScope, TenantConfig
from leadfunnel.services.cta_resolver import CtaResolver
from leadfunnel.services.intake_client import IntakeClient
from leadfunnel.services.logical_steps import (
    LogicalStep,
    compute_logical_steps,
    step_questions,
)
from leadfunnel.services.submission import SubmissionPipeline
from leadfunnel.services.validation import validate_step_answer
from leadfunnel.utils.exceptions import FunnelError

logger = structlog.get_logger()

SESSION_KEY_PREFIX = "intake_session_"
POLL_INTERVAL_SECONDS = 2.0


def utm_from_query(query: str | Mapping[str, str] | None) -> dict[str, str]:
    """Pick the standard UTM parameters out of a query string."""
    if not query:
        return {}
    params = dict(parse_qsl(query.lstrip("?"))) if isinstance(query, str) else dict(query)
    return {key: params[key] for key in UTM_KEYS if params.get(key)}


def get_or_create_session_id(
    app_id: str,
    scope: SessionScope,
    storage: MutableMapping[str, str] | None = None,
) -> str:
    """Session id for a new funnel instance.

    ``load`` scope always returns a fresh id. ``tab`` scope reuses the id kept
    in ``storage`` (the tab's session storage) and creates it on first use.
    """
    if scope == SessionScope.TAB and storage is not None:
        key = f"{SESSION_KEY_PREFIX}{app_id}"
        if not storage.get(key):
            storage[key] = str(uuid.uuid4())
        return storage[key]
    return str(uuid.uuid4())


class Funnel:
    """State of one funnel visit.

    Args:
        app_id: Tenant id.
        config: Tenant config.
        questions: Tenant questions in display order.
        client: Transport to the intake API.
        query: Page query string, read once for UTM parameters.
        session_scope: Overrides ``config.session_scope``.
        session_storage: Per-tab storage used by the ``tab`` session scope.
        sleep: Delay function used while polling for a job result.
    """

    def __init__(
        self,
        app_id: str,
        config: TenantConfig,
        questions: list[Question],
        client: IntakeClient,
        query: str | Mapping[str, str] | None = None,
        session_scope: SessionScope | None = None,
        session_storage: MutableMapping[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.app_id = app_id
        self.config = config
        self.questions = list(questions)
        self.steps: list[LogicalStep] = compute_logical_steps(self.questions)
        self.client = client
        self._sleep = sleep

        self.utm = utm_from_query(query)
        self.session_id = get_or_create_session_id(
            app_id, session_scope or config.session_scope, session_storage
        )
        self.pipeline = SubmissionPipeline(
            app_id, config, self.questions, client, self.session_id, self.utm
        )
        self.resolver = CtaResolver(
            config.cta,
            default_message=config.default_thank_you_message,
            on_webhook_action=self._send_cta_action,
        )

        self.stage = FlowStep.HERO if FlowStep.HERO in config.steps else FlowStep.QUESTIONS
        self.question_index = 0
        self.answers: dict[str, str | list[str]] = {}
        self.consent_given = False
        self.errors: dict[str, str] = {}
        self.error: str | None = None
        self.submitting = False

        self.result: dict[str, Any] | None = None
        self.job_id: str | None = None
        self.resolved_view: ResolvedView | None = None
        self.pending_sub_choice: SubChoicePicker | None = None
        self.navigation: Navigation | None = None
        self._sub_choice_option: VideoSubChoiceOption | None = None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> LogicalStep | None:
        if self.stage != FlowStep.QUESTIONS or not self.steps:
            return None
        return self.steps[self.question_index]

    @property
    def is_last_step(self) -> bool:
        return self.question_index >= len(self.steps) - 1

    @property
    def progress(self) -> tuple[int, int]:
        """(current, total) logical steps for the progress bar."""
        if self.stage == FlowStep.RESULT:
            return len(self.steps), len(self.steps)
        if self.stage == FlowStep.HERO:
            return 0, len(self.steps)
        return self.question_index + 1, len(self.steps)

    def start(self) -> bool:
        """Leave the hero screen for the first logical step."""
        if self.stage != FlowStep.HERO:
            return False
        if not self.steps:
            return self._complete()
        self.stage = FlowStep.QUESTIONS
        self.question_index = 0
        self._beacon()
        return True

    def advance(self) -> bool:
        """Complete the current step if it validates.

        Completing the last step submits, as does advancing a funnel with no
        questions. Returns whether the funnel moved.
        """
        if self.submitting:
            return False
        if self.stage == FlowStep.QUESTIONS and not self.steps:
            return self._complete()
        step = self.current_step
        if step is None:
            return False

        errors: dict[str, str] = {}
        for question in step_questions(step):
            message = validate_step_answer(question, self.answers.get(question.id))
            if message:
                errors[question.id] = message
        if errors:
            self.errors.update(errors)
            return False

        if self.is_last_step:
            return self._complete()

        self.question_index += 1
        self._beacon()
        return True

    def back(self) -> None:
        """Go back one logical step, or to the hero from the first step."""
        if self.stage != FlowStep.QUESTIONS or self.submitting:
            return
        self.error = None
        if self.question_index > 0:
            self.question_index -= 1
        elif FlowStep.HERO in self.config.steps:
            self.stage = FlowStep.HERO

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def set_answer(self, question_id: str, value: str | list[str]) -> None:
        self.answers[question_id] = value
        self.errors.pop(question_id, None)
        self.error = None

    def select_option(self, value: str) -> bool:
        """Pick an option on a single/multi step.

        Single-choice answers advance immediately; multi-choice toggles.
        """
        step = self.current_step
        if not isinstance(step, Question) or step.type not in (
            QuestionType.SINGLE,
            QuestionType.MULTI,
        ):
            raise ValueError("Current step is not a choice question")

        if step.type == QuestionType.SINGLE:
            self.set_answer(step.id, value)
            return self.advance()

        selected = list(self.answers.get(step.id) or [])
        if value in selected:
            selected.remove(value)
        else:
            selected.append(value)
        self.set_answer(step.id, selected)
        return False

    def set_consent(self, given: bool) -> None:
        self.consent_given = given

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _beacon(self) -> None:
        question = step_questions(self.steps[self.question_index])[0]
        self.pipeline.send_progress(
            FlowStep.QUESTIONS.value,
            dict(self.answers),
            question_index=self.question_index,
            question_id=question.id,
            question_text=question.question or question.label,
            consent_given=self._consent_flag(),
        )

    def _consent_flag(self) -> bool | None:
        return self.consent_given if self.pipeline.consent_gated else None

    def _complete(self) -> bool:
        self.submitting = True
        self.error = None
        try:
            outcome = self.pipeline.submit(dict(self.answers), self._consent_flag())
        except FunnelError as e:
            question_ids = {q.id for q in self.questions}
            for item in getattr(e, "errors", None) or []:
                if item.get("field") in question_ids:
                    self.errors[item["field"]] = item["message"]
            self.error = e.message
            logger.info("Submission failed", app_id=self.app_id, error_code=e.error_code)
            return False
        finally:
            self.submitting = False

        self.stage = FlowStep.RESULT
        if outcome.use_cta_config:
            self.resolved_view = self.resolver.initial_view()
            return True

        self.result = outcome.result
        if self.result and "job_id" in self.result:
            self.job_id = str(self.result["job_id"])
        else:
            self.resolved_view = self.resolver.view_from_result(self.result or {})
        return True

    def poll_result(self) -> bool:
        """Check once for a pending job's result (legacy sync mode).

        Returns True once the result is in.
        """
        if self.job_id is None:
            return self.result is not None
        response = self.client.poll_status(self.job_id)
        result = response.get("result")
        if not isinstance(result, dict):
            return False
        self.job_id = None
        self.result = result
        self.resolved_view = self.resolver.view_from_result(result)
        return True

    def wait_for_result(self, max_attempts: int = 30) -> bool:
        """Poll every POLL_INTERVAL_SECONDS until the job finishes."""
        for _ in range(max_attempts):
            self._sleep(POLL_INTERVAL_SECONDS)
            if self.poll_result():
                return True
        return False

    # ------------------------------------------------------------------
    # CTA
    # ------------------------------------------------------------------

    def _send_cta_action(self, option: WebhookThenMessageOption) -> None:
        self.pipeline.send_cta_action(
            dict(self.answers),
            self._consent_flag(),
            tag=option.webhook_tag,
            webhook_url=option.webhook_url,
        )

    def select_cta_option(self, option_id: str) -> ResolvedView | Navigation | SubChoicePicker:
        """Select a top-level multi-choice CTA option.

        Discards any in-progress sub-choice and the previous view.
        """
        if self.stage != FlowStep.RESULT:
            raise ValueError("CTA options are only available on the result step")
        option: CtaOption = self.resolver.get_option(option_id)

        self.pending_sub_choice = None
        self._sub_choice_option = None
        self.resolved_view = None
        self.navigation = None

        outcome = self.resolver.resolve(option)
        if isinstance(outcome, SubChoicePicker):
            self.pending_sub_choice = outcome
            self._sub_choice_option = option
        elif isinstance(outcome, Navigation):
            self.navigation = outcome
        else:
            self.resolved_view = outcome
        return outcome

    def select_sub_choice(self, index: int) -> ResolvedView:
        """Pick a choice from the pending sub-choice picker."""
        if self._sub_choice_option is None:
            raise ValueError("No sub-choice is pending")
        view = self.resolver.resolve(self._sub_choice_option, sub_choice_index=index)
        self.resolved_view = view
        self.pending_sub_choice = None
        self._sub_choice_option = None
        return view

    def back_to_options(self) -> None:
        """Return from a resolved option to the option list."""
        self.resolved_view = None
        self.pending_sub_choice = None
        self._sub_choice_option = None
        self.navigation = None
