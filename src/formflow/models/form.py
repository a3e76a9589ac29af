"""Form schema model — the ordered question list plus form-level settings.

The form owns traversal order.  Questions are sorted by ``sequence_index``;
questions authored without one receive their declaration position, so a
plain YAML list keeps its natural order while filtered or regrouped
question sets can pin an explicit order.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from formflow.errors import FormSchemaError
from formflow.models.question import Question


class DerivedField(BaseModel):
    """A value computed from the final Response Map by an authored expression."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field_id: str
    expression: str = Field(alias="jsonata")


class FormSettings(BaseModel):
    """Form-level settings relevant to the session core."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    derived_fields: List[DerivedField] = Field(
        default_factory=list, alias="computedFromResponses"
    )
    # URL query parameter names allowed to seed initial responses
    query_parameters: List[str] = Field(
        default_factory=list, alias="queryParameters"
    )
    webhook_url: Optional[str] = Field(default=None, alias="webhookUrl")

    @model_validator(mode="before")
    @classmethod
    def _flatten_nested_layout(cls, data: Any) -> Any:
        """Accept the nested editor layout.

        Editor exports nest derived fields and query parameters under
        ``additionalFields`` and the webhook under ``integrations``.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        additional = data.pop("additionalFields", None) or {}
        if "computedFromResponses" in additional:
            data.setdefault("computedFromResponses", additional["computedFromResponses"])
        # "queryParamater" is the legacy (misspelt) key
        for key in ("queryParameters", "queryParamater"):
            if key in additional:
                data.setdefault("queryParameters", additional[key])
        integrations = data.pop("integrations", None) or {}
        if integrations.get("webhookUrl"):
            data.setdefault("webhookUrl", integrations["webhookUrl"])
        return data


class FormSchema(BaseModel):
    """An authored form: identity, ordered questions, and settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    version_id: Optional[str] = Field(default=None, alias="versionId")
    title: str = ""
    questions: List[Question] = []
    settings: FormSettings = FormSettings()

    @field_validator("questions", mode="after")
    @classmethod
    def _order_questions(cls, questions: List[Question]) -> List[Question]:
        """Reject duplicate ids, fill missing sequence indexes, sort by them."""
        seen: set[str] = set()
        for q in questions:
            if q.id in seen:
                raise FormSchemaError(f"Duplicate question id: {q.id!r}")
            seen.add(q.id)

        indexed = [
            q if q.sequence_index is not None else q.model_copy(update={"sequence_index": pos})
            for pos, q in enumerate(questions)
        ]
        indices = [q.sequence_index for q in indexed]
        if len(set(indices)) != len(indices):
            raise FormSchemaError("Duplicate sequence_index in question list")
        return sorted(indexed, key=lambda q: q.sequence_index)

    @model_validator(mode="after")
    def _check_additional_fields(self) -> "FormSchema":
        question_ids = self.question_ids
        for derived in self.settings.derived_fields:
            if derived.field_id in question_ids:
                raise FormSchemaError(
                    f"Derived field {derived.field_id!r} collides with a question id"
                )
        for name in self.settings.query_parameters:
            if name in question_ids:
                raise FormSchemaError(
                    f"Query parameter {name!r} collides with a question id"
                )
        return self

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    @property
    def question_ids(self) -> set[str]:
        return {q.id for q in self.questions}

    @property
    def derived_field_ids(self) -> set[str]:
        return {d.field_id for d in self.settings.derived_fields}

    @property
    def additional_field_ids(self) -> set[str]:
        """Answers that belong to no question: derived fields and query parameters."""
        return self.derived_field_ids | set(self.settings.query_parameters)

    def get_question(self, question_id: str) -> Question | None:
        """Return the question with ``question_id``, or None."""
        for q in self.questions:
            if q.id == question_id:
                return q
        return None

    def first_question(self) -> Question | None:
        """First question in traversal order, or None for an empty form."""
        return self.questions[0] if self.questions else None
