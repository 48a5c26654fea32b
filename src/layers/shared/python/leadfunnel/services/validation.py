"""Step-local and server-side answer validation."""

import re
from typing import Mapping

from leadfunnel.models.question import ContactKind, Question, QuestionType
from leadfunnel.services.contact_payload import HIDDEN_SENTINEL, contact_kind_to_payload_key
from leadfunnel.utils.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INSTAGRAM_RE = re.compile(r"^[a-zA-Z0-9._]+$")
MIN_PHONE_DIGITS = 10
MAX_INSTAGRAM_LENGTH = 30

REQUIRED_MESSAGE = "This field is required."

# Inline messages shown under a contact input
CONTACT_MESSAGES = {
    ContactKind.EMAIL: "Please enter a valid email.",
    ContactKind.TEL: "Please enter a valid phone number.",
    ContactKind.INSTAGRAM: (
        "Please enter a valid Instagram handle (letters, numbers, dots, underscores only)."
    ),
}
INSTAGRAM_EMPTY_MESSAGE = "Please enter your Instagram handle."

# Messages returned by the intake API
SERVER_MESSAGES = {
    ContactKind.EMAIL: "Invalid email address",
    ContactKind.TEL: "Invalid phone number",
    ContactKind.INSTAGRAM: "Invalid Instagram handle",
}


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_valid_phone(value: str) -> bool:
    return len(re.sub(r"\D", "", value)) >= MIN_PHONE_DIGITS


def normalize_instagram(value: str) -> str:
    """Strip one leading @ from a handle."""
    return value.strip().removeprefix("@").strip()


def is_valid_instagram(value: str) -> bool:
    handle = normalize_instagram(value)
    return 0 < len(handle) <= MAX_INSTAGRAM_LENGTH and bool(INSTAGRAM_RE.match(handle))


def _passes(kind: ContactKind, value: str) -> bool:
    if kind == ContactKind.EMAIL:
        return is_valid_email(value)
    if kind == ContactKind.TEL:
        return is_valid_phone(value)
    if kind == ContactKind.INSTAGRAM:
        return is_valid_instagram(value)
    return True


def validate_contact_value(question: Question, value: str | None) -> str | None:
    """Validate one contact field.

    Returns:
        The inline error message, or None if the value is acceptable.
    """
    trimmed = (value or "").strip()
    kind = question.kind
    if not trimmed:
        if not question.is_required:
            return None
        return INSTAGRAM_EMPTY_MESSAGE if kind == ContactKind.INSTAGRAM else REQUIRED_MESSAGE
    if kind == ContactKind.INSTAGRAM and not normalize_instagram(trimmed):
        return INSTAGRAM_EMPTY_MESSAGE
    if not _passes(kind, trimmed):
        return CONTACT_MESSAGES[kind]
    return None


def validate_step_answer(question: Question, value: str | list[str] | None) -> str | None:
    """Validate the answer to a single/multi/text question before advancing."""
    if question.type == QuestionType.CONTACT:
        return validate_contact_value(question, value if isinstance(value, str) else None)
    if question.type == QuestionType.TEXT:
        if question.is_required and not (isinstance(value, str) and value.strip()):
            return REQUIRED_MESSAGE
        return None
    if question.type == QuestionType.SINGLE:
        if not isinstance(value, str) or not value:
            return "Please choose an option."
        if question.options and value not in question.options:
            return "Please choose one of the listed options."
        return None
    if not isinstance(value, list) or not value:
        return "Please choose at least one option."
    return None


def validate_contact_payload(
    contact: Mapping[str, str],
    questions: list[Question],
    allow_hidden: bool = False,
) -> None:
    """Check a submitted contact map against the tenant's contact questions.

    Args:
        contact: Canonical-key contact map from the request.
        questions: The tenant's questions; only contact questions are checked.
        allow_hidden: Accept the redaction sentinel in place of a value.

    Raises:
        ValidationError: On the first missing or malformed field.
    """
    for question in questions:
        if not question.is_contact:
            continue
        kind = question.kind
        key = contact_kind_to_payload_key(kind)
        trimmed = str(contact.get(key) or "").strip()
        if not trimmed:
            if question.is_required:
                raise ValidationError(
                    f"Missing required field: {key}",
                    errors=[{"field": key, "message": REQUIRED_MESSAGE}],
                )
            continue
        if allow_hidden and trimmed == HIDDEN_SENTINEL:
            continue
        if not _passes(kind, trimmed):
            raise ValidationError(
                SERVER_MESSAGES[kind],
                errors=[{"field": key, "message": CONTACT_MESSAGES[kind]}],
            )
