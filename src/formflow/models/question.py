"""Question models for form schemas.

A question is authored before the session starts and never changes while a
session runs.  Each question carries:

  - ``id``: stable identifier, unique within a form
  - ``question_type``: one of the closed set in :class:`QuestionType`
  - ``branching_rules``: ordered show/hide rules over prior answers
  - ``sequence_index``: explicit traversal order

Form files exported by the form editor use camelCase keys
(``questionType``, ``conditionalLogic``) and camelCase type names
(``singleChoice``).  Both spellings are accepted; models always expose the
snake_case names.
"""

from __future__ import annotations

import enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from formflow.constants import QUESTION_TYPE_ALIASES


class QuestionType(str, enum.Enum):
    """Closed set of question types supported by the engine."""

    SHORT_TEXT = "short_text"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    RATING = "rating"
    LINEAR_SCALE = "linear_scale"
    LIKERT_SCALE = "likert_scale"
    DATE = "date"
    ADDRESS = "address"
    FILE_UPLOAD = "file_upload"
    RANKING = "ranking"


class BranchingRule(BaseModel):
    """One show/hide rule attached to a question.

    ``conditions`` are independent boolean expressions over the Response Map.
    ``logic`` combines them: ``AND`` (all true) or ``OR`` (any true).  Any
    other value, or no value, behaves like ``OR``.
    """

    model_config = ConfigDict(frozen=True)

    conditions: List[str] = []
    logic: Optional[str] = None
    action: Literal["show", "hide"]

    @field_validator("conditions", mode="before")
    @classmethod
    def _blank_null_conditions(cls, value: Any) -> Any:
        # A null condition evaluates to False, same as an empty expression
        if isinstance(value, list):
            return ["" if c is None else c for c in value]
        return value


class Option(BaseModel):
    """A selectable option with an id and display label."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str


class Validations(BaseModel):
    """Answer validation flags."""

    model_config = ConfigDict(frozen=True)

    required: bool = False


class Question(BaseModel):
    """A single form question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    question_type: QuestionType = Field(alias="questionType")
    title: str = ""
    description: Optional[str] = None
    options: List[Option] = []
    # Bounds for rating / linear_scale questions
    min_value: Optional[int] = Field(default=None, alias="minValue")
    max_value: Optional[int] = Field(default=None, alias="maxValue")
    branching_rules: List[BranchingRule] = Field(
        default_factory=list, alias="conditionalLogic"
    )
    validations: Validations = Validations()
    # None until the owning form assigns declaration order
    sequence_index: Optional[int] = Field(default=None, alias="sequenceIndex")

    @field_validator("question_type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return QUESTION_TYPE_ALIASES.get(value, value)
        return value

    @field_validator("branching_rules", mode="before")
    @classmethod
    def _drop_null_rules(cls, value: Any) -> Any:
        # Authored rule lists occasionally contain nulls
        if value is None:
            return []
        if isinstance(value, list):
            return [r for r in value if r is not None]
        return value

    @property
    def is_required(self) -> bool:
        return self.validations.required

    @property
    def has_branching(self) -> bool:
        return bool(self.branching_rules)
