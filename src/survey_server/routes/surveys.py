"""Respondent endpoints — survey detail and submission.

Identity headers are optional here: anonymous callers may read and answer
surveys that do not require login.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from survey_core.models.identity import UserIdentity
from survey_core.models.survey import AnswerItem, SurveyDetail
from survey_core.service import SurveyService

from survey_server.config import ServerSettings
from survey_server.dependencies import bounded, get_db, get_service, get_settings, get_user

router = APIRouter(prefix="/surveys", tags=["surveys"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class SubmitRequest(BaseModel):
    """Body for POST /surveys/{survey_id}/submissions."""
    answers: list[AnswerItem] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    id: int


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/{path}")
async def get_detail(
    path: str,
    user: UserIdentity | None = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> SurveyDetail:
    """Fetch a published survey by its public path, with visible vote counts."""
    return await bounded(settings, service.get_detail(db, path=path, identity=user))


@router.post("/{survey_id}/submissions", status_code=201)
async def submit(
    survey_id: int,
    body: SubmitRequest,
    user: UserIdentity | None = Depends(get_user),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> SubmitResponse:
    """Submit answers.  Nothing is stored unless every answer is valid."""
    record_id = await bounded(settings, service.submit(
        db, survey_id=survey_id, answers=body.answers, identity=user,
    ))
    return SubmitResponse(id=record_id)
