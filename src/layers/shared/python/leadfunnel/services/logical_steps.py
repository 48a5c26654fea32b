"""Grouping of questions into logical steps (screens).

Consecutive contact questions share one screen. A contact step is always a
list, even when it holds a single question; every other question is its own
step.
"""

from leadfunnel.models.question import Question

LogicalStep = Question | list[Question]


def compute_logical_steps(questions: list[Question]) -> list[LogicalStep]:
    """Fold contiguous runs of contact questions into single steps."""
    steps: list[LogicalStep] = []
    run: list[Question] = []
    for question in questions:
        if question.is_contact:
            run.append(question)
            continue
        if run:
            steps.append(run)
            run = []
        steps.append(question)
    if run:
        steps.append(run)
    return steps


def flatten_logical_steps(steps: list[LogicalStep]) -> list[Question]:
    """Inverse of compute_logical_steps."""
    flat: list[Question] = []
    for step in steps:
        if isinstance(step, list):
            flat.extend(step)
        else:
            flat.append(step)
    return flat


def step_questions(step: LogicalStep) -> list[Question]:
    return step if isinstance(step, list) else [step]


def get_first_question_of_logical_step(
    questions: list[Question], logical_index: int
) -> Question | None:
    """Representative question of a step, used to label progress events."""
    steps = compute_logical_steps(questions)
    if logical_index < 0 or logical_index >= len(steps):
        return None
    return step_questions(steps[logical_index])[0]
