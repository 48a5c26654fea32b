"""Question model for funnel questionnaires."""

from enum import Enum

from pydantic import Field

from leadfunnel.models.base import CamelModel


class QuestionType(str, Enum):
    """Question types."""

    SINGLE = "single"
    MULTI = "multi"
    TEXT = "text"
    CONTACT = "contact"


class ContactKind(str, Enum):
    """Kinds of contact field a contact question collects."""

    EMAIL = "email"
    TEL = "tel"
    INSTAGRAM = "instagram"
    TEXT = "text"


class Question(CamelModel):
    """One page of the questionnaire.

    ``id`` keys the answer map. ``options`` only applies to single/multi
    questions; ``contact_kind``, ``label``, ``placeholder``, ``required`` and
    ``show_consent_under`` only apply to contact questions.
    """

    id: str = Field(..., min_length=1, description="Stable question ID")
    type: QuestionType = Field(..., description="Question type")
    question: str = Field(default="", description="Prompt text")
    options: list[str] | None = Field(None, description="Choice labels (single/multi)")
    image_url: str | None = Field(None, description="Optional image below the prompt")
    submit_button_label: str | None = Field(None, description="Button label override")

    contact_kind: ContactKind | None = Field(None, description="Contact field kind")
    label: str | None = Field(None, description="Input label for contact fields")
    placeholder: str | None = Field(None, description="Input placeholder for contact fields")
    required: bool | None = Field(None, description="Contact: absent means required")
    show_consent_under: bool | None = Field(
        None, description="Show the consent checkbox under this contact field"
    )

    @property
    def is_contact(self) -> bool:
        return self.type == QuestionType.CONTACT

    @property
    def is_required(self) -> bool:
        return self.required is not False

    @property
    def kind(self) -> ContactKind:
        """Contact kind, defaulting to email when unset."""
        return self.contact_kind or ContactKind.EMAIL


def validate_questions(questions: list[Question]) -> list[Question]:
    """Check the tenant-level invariants of a question list.

    Raises:
        ValueError: If ids are duplicated or a live question has no prompt.
    """
    seen: set[str] = set()
    for question in questions:
        if question.id in seen:
            raise ValueError(f"Duplicate question id: {question.id}")
        seen.add(question.id)
        if not question.is_contact and not question.question.strip():
            raise ValueError(f"Question {question.id} has no prompt text")
        if question.type in (QuestionType.SINGLE, QuestionType.MULTI) and not question.options:
            raise ValueError(f"Question {question.id} has no options")
    return questions
