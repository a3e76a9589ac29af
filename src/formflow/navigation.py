"""Navigation resolver — finds the next or previous visible question.

Every function here is pure: questions and responses come in as parameters,
a question (or None) comes out, and the responses are never mutated.  Calling
the same function twice with the same arguments returns the same result, so
drivers may re-resolve as often as they like.

``questions`` must be in traversal order (``FormSchema.questions`` already is).
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from formflow.evaluator import VisibilityEvaluator
from formflow.models.question import Question


def index_of(question_id: str, questions: Sequence[Question]) -> int | None:
    """Position of ``question_id`` in ``questions``, or None if absent."""
    for idx, q in enumerate(questions):
        if q.id == question_id:
            return idx
    return None


def find_next_visible(
    from_question: Question,
    questions: Sequence[Question],
    responses: Mapping[str, Any],
    evaluator: VisibilityEvaluator,
) -> Question | None:
    """First visible question after ``from_question``.

    Returns None if ``from_question`` is not in the list (resolution failure)
    or if no later question is visible (form complete).  Callers that need to
    tell these apart check membership with :func:`index_of` first.
    """
    idx = index_of(from_question.id, questions)
    if idx is None:
        return None
    for candidate in questions[idx + 1:]:
        if evaluator.is_visible(candidate, responses):
            return candidate
    return None


def find_previous_visible(
    from_question: Question,
    questions: Sequence[Question],
    responses: Mapping[str, Any],
    evaluator: VisibilityEvaluator,
) -> Question | None:
    """Last visible question before ``from_question`` (wizard back navigation)."""
    idx = index_of(from_question.id, questions)
    if idx is None:
        return None
    for pos in range(idx - 1, -1, -1):
        candidate = questions[pos]
        if evaluator.is_visible(candidate, responses):
            return candidate
    return None


def find_first_visible(
    questions: Sequence[Question],
    responses: Mapping[str, Any],
    evaluator: VisibilityEvaluator,
) -> Question | None:
    """First visible question of the form, or None if nothing is visible."""
    for candidate in questions:
        if evaluator.is_visible(candidate, responses):
            return candidate
    return None


def progress(question_id: str | None, questions: Sequence[Question]) -> float:
    """Completion percentage for a question pointer.

    ``(index + 1) / len(questions) * 100``; 0 before start or for an unknown id.
    """
    if question_id is None or not questions:
        return 0.0
    idx = index_of(question_id, questions)
    if idx is None:
        return 0.0
    return (idx + 1) / len(questions) * 100
