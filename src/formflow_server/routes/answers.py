"""Answer persistence endpoints.

``POST /forms/{form_id}/save-answers`` accepts the payloads emitted by the
SDK's persistence worker:

  - partial: ``{isPartial: true, sessionId, questionId, value}``
  - final:   ``{isPartial: false, sessionId, allResponses, status?}``

The submission id is the client session id.  Legacy field spellings
(``submissionId``, ``answerValue``, ``responses``, ``versionId``) are
accepted as well.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from formflow_server.dependencies import get_db, get_recorder
from formflow_server.recorder import AnswerRecorder

router = APIRouter(tags=["answers"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class SaveAnswersRequest(BaseModel):
    """Body for POST /forms/{form_id}/save-answers."""

    model_config = ConfigDict(extra="ignore")

    submission_id: str = Field(validation_alias=AliasChoices("sessionId", "submissionId"))
    version_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("formVersionId", "versionId"),
    )
    is_partial: bool = Field(False, validation_alias="isPartial")
    question_id: Optional[str] = Field(None, validation_alias="questionId")
    answer_value: Any = Field(None, validation_alias=AliasChoices("value", "answerValue"))
    responses: Optional[dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("allResponses", "responses"),
    )
    status: Optional[str] = None
    test_mode: bool = Field(False, validation_alias="testMode")


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/forms/{form_id}/save-answers")
async def save_answers(
    form_id: str,
    body: SaveAnswersRequest,
    db: AsyncSession = Depends(get_db),
    recorder: AnswerRecorder = Depends(get_recorder),
) -> dict[str, Any]:
    """Save one answer (partial) or the whole response set (final).

    Returns 400 when a partial save lacks ``questionId`` or a value.
    """
    if body.is_partial:
        if not body.question_id or "answer_value" not in body.model_fields_set:
            raise ValueError("questionId and answerValue are required for partial saves")
        return await recorder.save_partial(
            db,
            form_id=form_id,
            submission_id=body.submission_id,
            question_id=body.question_id,
            value=body.answer_value,
            version_id=body.version_id,
            test_mode=body.test_mode,
        )

    return await recorder.save_final(
        db,
        form_id=form_id,
        submission_id=body.submission_id,
        responses=body.responses or {},
        status=body.status,
        version_id=body.version_id,
        test_mode=body.test_mode,
    )


@router.get("/forms/{form_id}/submissions/{submission_id}")
async def get_submission(
    form_id: str,
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    recorder: AnswerRecorder = Depends(get_recorder),
) -> dict[str, Any]:
    """Stored status and answers of a submission; 404 if unknown."""
    return await recorder.get_submission(db, form_id=form_id, submission_id=submission_id)
