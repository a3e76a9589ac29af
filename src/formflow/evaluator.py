"""VisibilityEvaluator — decides whether a question is shown.

Visibility is a pure function of the question's branching rules and the
Response Map.  Rules are evaluated in declaration order:

  - each rule combines its conditions with AND (all) or OR (any); a missing or
    unrecognised ``logic`` behaves like OR
  - a firing ``hide`` rule vetoes immediately; later rules are not consulted
  - if any ``show`` rule exists, the question is visible only if one fired
  - otherwise the question is visible

Condition failures never escape this module: an expression that raises or
returns a non-boolean counts as ``False``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from formflow.interfaces import ConditionEvaluator
from formflow.models.question import BranchingRule, Question

logger = logging.getLogger(__name__)


class VisibilityEvaluator:
    """Evaluates branching rules with a pluggable condition evaluator.

    Args:
        conditions: the expression language used for rule conditions
    """

    def __init__(self, conditions: ConditionEvaluator) -> None:
        self._conditions = conditions

    def is_visible(self, question: Question, responses: Mapping[str, Any]) -> bool:
        """Return True if ``question`` should be shown given ``responses``."""
        rules = question.branching_rules
        if not rules:
            return True

        has_show_rule = False
        shown = False

        for rule in rules:
            if rule.action == "show":
                has_show_rule = True

            if not self._rule_fires(rule, responses):
                continue

            if rule.action == "hide":
                return False
            shown = True

        if has_show_rule:
            return shown
        return True

    # ------------------------------------------------------------------
    # Rule / condition evaluation
    # ------------------------------------------------------------------

    def _rule_fires(self, rule: BranchingRule, responses: Mapping[str, Any]) -> bool:
        """Combine a rule's condition results according to its logic.

        A rule without conditions never fires.
        """
        if not rule.conditions:
            return False

        results = [self._eval_condition(cond, responses) for cond in rule.conditions]
        if rule.logic == "AND":
            return all(results)
        return any(results)

    def _eval_condition(self, expression: str, responses: Mapping[str, Any]) -> bool:
        """Evaluate one condition; anything but a literal True is False."""
        if not expression:
            return False
        try:
            result = self._conditions.evaluate(expression, dict(responses))
        except Exception as exc:
            logger.warning("Condition %r failed to evaluate: %s", expression, exc)
            return False
        return result is True


def is_visible(
    question: Question,
    responses: Mapping[str, Any],
    conditions: ConditionEvaluator,
) -> bool:
    """Functional shorthand for :meth:`VisibilityEvaluator.is_visible`."""
    return VisibilityEvaluator(conditions).is_visible(question, responses)
