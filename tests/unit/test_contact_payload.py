"""Tests for contact re-keying, answer re-keying and redaction."""

from leadfunnel.models.question import Question
from leadfunnel.services.contact_payload import (
    HIDDEN_SENTINEL,
    answers_by_question_text,
    build_contact_payload,
    contact_kind_to_payload_key,
    redact_contact,
)


def contact(qid: str, kind: str) -> Question:
    return Question.model_validate({"id": qid, "type": "contact", "contactKind": kind})


def choice(qid: str, text: str) -> Question:
    return Question.model_validate(
        {"id": qid, "type": "single", "question": text, "options": ["Yes", "No"]}
    )


class TestContactPayload:
    """Tests for build_contact_payload."""

    def test_kind_to_key(self):
        assert contact_kind_to_payload_key("email") == "email"
        assert contact_kind_to_payload_key("tel") == "phone"
        assert contact_kind_to_payload_key("instagram") == "instagram"
        assert contact_kind_to_payload_key("text") == "text"

    def test_rekeys_by_kind(self):
        questions = [contact("c1", "email"), contact("c2", "tel")]
        answers = {"c1": "x@y.com", "c2": "+44 7123 456789"}

        assert build_contact_payload(questions, answers) == {
            "email": "x@y.com",
            "phone": "+44 7123 456789",
        }

    def test_independent_of_question_order(self):
        first = [contact("c1", "email"), contact("c2", "tel"), contact("c3", "instagram")]
        second = [first[2], first[0], first[1]]
        answers = {"c1": "x@y.com", "c2": "07123456789", "c3": "@john.doe_1"}

        assert build_contact_payload(first, answers) == build_contact_payload(second, answers)

    def test_unanswered_and_non_contact_questions_are_skipped(self):
        questions = [choice("q1", "Pick one"), contact("c1", "email"), contact("c2", "tel")]
        answers = {"q1": "Yes", "c1": "x@y.com", "c2": "   "}

        assert build_contact_payload(questions, answers) == {"email": "x@y.com"}

    def test_missing_kind_defaults_to_email(self):
        question = Question.model_validate({"id": "c1", "type": "contact"})

        assert build_contact_payload([question], {"c1": "x@y.com"}) == {"email": "x@y.com"}

    def test_first_question_of_a_kind_wins(self):
        questions = [contact("work", "email"), contact("home", "email")]
        answers = {"work": "work@y.com", "home": "home@y.com"}

        assert build_contact_payload(questions, answers) == {"email": "work@y.com"}


class TestAnswersByQuestionText:
    """Tests for answers_by_question_text."""

    def test_keys_by_trimmed_prompt(self):
        questions = [choice("q1", "  What describes you best?  ")]

        assert answers_by_question_text(questions, {"q1": "Yes"}) == {
            "What describes you best?": "Yes"
        }

    def test_duplicate_prompts_get_suffixes(self):
        questions = [choice("a", "Why?"), choice("b", "Why?"), choice("c", "Why?")]
        answers = {"a": "Yes", "b": "No", "c": "Yes"}

        assert answers_by_question_text(questions, answers) == {
            "Why?": "Yes",
            "Why? (2)": "No",
            "Why? (3)": "Yes",
        }

    def test_suffix_does_not_depend_on_unanswered_questions(self):
        questions = [choice("a", "Why?"), choice("b", "Why?")]

        assert answers_by_question_text(questions, {"b": "No"}) == {"Why? (2)": "No"}

    def test_suffix_skips_a_literal_prompt(self):
        questions = [choice("a", "Why?"), choice("b", "Why?"), choice("c", "Why? (2)")]
        answers = {"a": "1", "b": "2", "c": "3"}

        assert answers_by_question_text(questions, answers) == {
            "Why?": "1",
            "Why? (3)": "2",
            "Why? (2)": "3",
        }

    def test_literal_prompt_before_duplicates_keeps_its_key(self):
        questions = [choice("c", "Why? (2)"), choice("a", "Why?"), choice("b", "Why?")]
        answers = {"a": "1", "b": "2", "c": "3"}

        assert answers_by_question_text(questions, answers) == {
            "Why? (2)": "3",
            "Why?": "1",
            "Why? (3)": "2",
        }

    def test_empty_prompt_falls_back_to_id(self):
        question = Question.model_validate({"id": "q9", "type": "text"})

        assert answers_by_question_text([question], {"q9": "hello"}) == {"q9": "hello"}

    def test_contact_answers_are_excluded(self):
        questions = [choice("q1", "Pick"), contact("c1", "email")]

        assert answers_by_question_text(questions, {"q1": "Yes", "c1": "x@y.com"}) == {
            "Pick": "Yes"
        }

    def test_multi_answers_are_copied(self):
        question = Question.model_validate(
            {"id": "m", "type": "multi", "question": "Where?", "options": ["UK", "USA"]}
        )
        original = ["UK", "USA"]
        keyed = answers_by_question_text([question], {"m": original})
        keyed["Where?"].append("Other")

        assert original == ["UK", "USA"]


class TestRedaction:
    """Tests for redact_contact."""

    def test_every_value_is_hidden(self):
        redacted = redact_contact({"email": "x@y.com", "phone": "07123456789"})

        assert redacted == {"email": HIDDEN_SENTINEL, "phone": HIDDEN_SENTINEL}

    def test_does_not_mutate_input(self):
        contact_map = {"email": "x@y.com"}
        redact_contact(contact_map)

        assert contact_map == {"email": "x@y.com"}
