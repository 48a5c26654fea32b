"""Payload shaping shared by progress and submit events.

The automation webhook sees a stable shape regardless of how the tenant
orders or renames questions: contact answers go under canonical keys and the
remaining answers are keyed by prompt text.
"""

from typing import Mapping

from leadfunnel.models.question import ContactKind, Question

HIDDEN_SENTINEL = "hidden"

CONTACT_PAYLOAD_KEYS = ("email", "phone", "instagram", "text")

_CONTACT_KIND_TO_KEY = {
    ContactKind.EMAIL: "email",
    ContactKind.TEL: "phone",
    ContactKind.INSTAGRAM: "instagram",
    ContactKind.TEXT: "text",
}

Answers = Mapping[str, str | list[str]]


def contact_kind_to_payload_key(kind: ContactKind | str) -> str:
    """Canonical payload key for a contact kind (tel maps to phone)."""
    return _CONTACT_KIND_TO_KEY[ContactKind(kind)]


def build_contact_payload(questions: list[Question], answers: Answers) -> dict[str, str]:
    """Re-key answered contact questions under canonical keys.

    When two contact questions share a kind the first answered one wins.
    """
    contact: dict[str, str] = {}
    for question in questions:
        if not question.is_contact:
            continue
        value = answers.get(question.id)
        if not isinstance(value, str) or not value.strip():
            continue
        contact.setdefault(contact_kind_to_payload_key(question.kind), value.strip())
    return contact


def answers_by_question_text(
    questions: list[Question], answers: Answers
) -> dict[str, str | list[str]]:
    """Key non-contact answers by prompt text.

    Falls back to the question id for an empty prompt. Duplicate prompts get
    " (2)", " (3)", ... suffixes in question order, skipping any suffixed key
    that is already taken or is itself another question's prompt.
    """
    asked = [q for q in questions if not q.is_contact]
    prompts = [q.question.strip() or q.id for q in asked]
    reserved = set(prompts)
    keyed: dict[str, str | list[str]] = {}
    used: set[str] = set()
    seen: dict[str, int] = {}
    for question, base in zip(asked, prompts):
        seen[base] = seen.get(base, 0) + 1
        key = base
        if seen[base] > 1 or base in used:
            n = max(seen[base], 2)
            while f"{base} ({n})" in used or f"{base} ({n})" in reserved:
                n += 1
            key = f"{base} ({n})"
        used.add(key)
        if question.id not in answers:
            continue
        value = answers[question.id]
        keyed[key] = list(value) if isinstance(value, list) else value
    return keyed


def redact_contact(contact: Mapping[str, str]) -> dict[str, str]:
    """Replace every contact value with the hidden sentinel."""
    return {key: HIDDEN_SENTINEL for key in contact}
