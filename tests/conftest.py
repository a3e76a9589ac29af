from typing import Any, Mapping

import pytest

from formflow.engine import FormSession
from formflow.expressions import PredicateConditionEvaluator
from formflow.interfaces import ConditionEvaluator
from formflow.persistence import IntentQueue, PersistenceScheduler
from formflow.storage import MemorySessionStore


class StubEvaluator(ConditionEvaluator):
    """Looks expressions up in a table; unknown expressions raise.

    Values in the table may be callables taking the context.
    """

    def __init__(self, table: dict[str, Any] | None = None) -> None:
        self.table = table or {}
        self.calls: list[str] = []

    def evaluate(self, expression: str, context: Mapping[str, Any]) -> Any:
        self.calls.append(expression)
        if expression not in self.table:
            raise ValueError(f"unknown expression {expression!r}")
        result = self.table[expression]
        return result(context) if callable(result) else result


@pytest.fixture
def predicates():
    return PredicateConditionEvaluator()


@pytest.fixture
def queue():
    return IntentQueue()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def session(predicates, queue, store):
    """FormSession over the predicate language with an inspectable queue."""
    return FormSession(
        predicates,
        scheduler=PersistenceScheduler(queue),
        store=store,
    )
