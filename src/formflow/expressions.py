"""Concrete condition evaluators.

Two expression languages ship with the SDK:

  - **JsonataConditionEvaluator**: JSONata expressions, the language form
    files are authored in (e.g. ``Q1 = "no"``, ``$count(Q3) > 1``)
  - **PredicateConditionEvaluator**: single ``<qid> <op> <json literal>``
    comparisons, handy for fixtures and hand-written forms

Both raise on malformed input.  Callers that must not fail (visibility,
derived fields) catch and log.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import jsonata

from formflow.interfaces import ConditionEvaluator

logger = logging.getLogger(__name__)


class JsonataConditionEvaluator(ConditionEvaluator):
    """Evaluates JSONata expressions against the Response Map.

    Compiled expressions are cached per expression string; forms re-evaluate
    the same conditions on every navigation step.
    """

    def __init__(self) -> None:
        self._compiled: dict[str, Any] = {}

    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        compiled = self._compiled.get(expression)
        if compiled is None:
            compiled = jsonata.Jsonata(expression)
            self._compiled[expression] = compiled
        return compiled.evaluate(dict(context))


# --- Predicate grammar: <qid> <op> <json literal> ---
_PREDICATE_RE = re.compile(
    r"^\s*(?P<qid>[A-Za-z_][\w.\-]*)\s*"
    r"(?P<op>==|!=|<=|>=|=|<|>|\bnot_contains\b|\bcontains\b|\bin\b)\s*"
    r"(?P<value>.+?)\s*$"
)


class PredicateConditionEvaluator(ConditionEvaluator):
    """Evaluates single-comparison predicates such as ``Q1 = "no"``.

    Operators:
        ``=`` / ``==``, ``!=``       — equality / inequality
        ``<``, ``<=``, ``>``, ``>=`` — numeric comparison (strings coerced)
        ``in``                       — answer is one of the literal list
        ``contains``                 — list element or substring membership
        ``not_contains``             — inverse of contains

    The right-hand side is parsed as JSON.  If the referenced question is
    unanswered the predicate is False.  A ``.field`` suffix on the qid drills
    into structured answers (``Q5.city = "Paris"``).
    """

    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        match = _PREDICATE_RE.match(expression)
        if match is None:
            raise ValueError(f"Malformed predicate: {expression!r}")

        qid, op, raw_value = match.group("qid", "op", "value")
        try:
            value = json.loads(raw_value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Predicate value is not valid JSON: {raw_value!r}") from exc

        field: str | None = None
        if "." in qid:
            qid, field = qid.split(".", 1)

        if qid not in context:
            return False
        answer = context[qid]

        if field is not None:
            if not isinstance(answer, Mapping):
                return False
            answer = answer.get(field)

        return self._compare(op, answer, value)

    @staticmethod
    def _compare(op: str, answer: Any, value: Any) -> bool:
        """Apply an operator to an answer and an expected value.

        Numeric comparisons coerce both sides to float; answers collected from
        text inputs are often numeric strings.
        """
        if op in ("=", "=="):
            return answer == value

        if op == "!=":
            return answer != value

        # --- Numeric comparisons ---
        if op in ("<", "<=", ">", ">="):
            try:
                ans_num = float(answer)
                val_num = float(value)
            except (TypeError, ValueError):
                return False
            if op == "<":
                return ans_num < val_num
            if op == "<=":
                return ans_num <= val_num
            if op == ">":
                return ans_num > val_num
            return ans_num >= val_num

        # --- Collection / string membership ---
        if op == "in":
            if not isinstance(value, list):
                return False
            return answer in value

        if op == "contains":
            if isinstance(answer, list):
                return value in answer
            return str(value) in str(answer)

        if op == "not_contains":
            if isinstance(answer, list):
                return value not in answer
            return str(value) not in str(answer)

        logger.warning("Unknown predicate operator: %s", op)
        return False
