"""Admin survey endpoints — authoring, publication, and deletion.

All endpoints require the ``X-Admin-ID`` header.  Admins act on their own
surveys; super admins (``X-Admin-Role: super``) act on every survey.
Schemas are accepted as raw JSON objects so that schema defects are
reported by the normalizer with a path, not by request validation.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.enums import SurveyStatus, SurveyType
from survey_core.models.identity import AdminIdentity
from survey_core.models.stats import StatsReport
from survey_core.models.survey import AdminSurveyDetail, SurveyInfo, SurveyPage
from survey_core.service import SurveyService

from survey_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, ServerSettings
from survey_server.dependencies import bounded, get_admin, get_db, get_service, get_settings

router = APIRouter(prefix="/admin/surveys", tags=["admin-surveys"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateSurveyRequest(BaseModel):
    """Body for POST /admin/surveys."""
    type: SurveyType = SurveyType.SURVEY
    schema_: dict[str, Any] = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class UpdateSurveyRequest(BaseModel):
    """Body for PUT /admin/surveys/{survey_id}."""
    schema_: dict[str, Any] = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class SetStatusRequest(BaseModel):
    """Body for PUT /admin/surveys/{survey_id}/status."""
    status: SurveyStatus


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("", status_code=201)
async def create_survey(
    body: CreateSurveyRequest,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> SurveyInfo:
    """Create an unpublished survey.  Returns 400 with the schema path on defects."""
    return await bounded(settings, service.create_survey(
        db, admin=admin, survey_type=body.type, schema=body.schema_,
    ))


@router.get("")
async def list_surveys(
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    type: SurveyType | None = Query(None),
    status: SurveyStatus | None = Query(None),
    keyword: str | None = Query(None, max_length=64),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> SurveyPage:
    """List surveys newest first, optionally filtered by type, status and title."""
    return await bounded(settings, service.list_surveys(
        db,
        admin=admin,
        survey_type=type,
        status=status,
        keyword=keyword,
        limit=limit,
        offset=offset,
    ))


@router.get("/{survey_id}")
async def get_survey(
    survey_id: int,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> AdminSurveyDetail:
    return await bounded(settings, service.get_survey(db, admin=admin, survey_id=survey_id))


@router.put("/{survey_id}")
async def update_survey(
    survey_id: int,
    body: UpdateSurveyRequest,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> SurveyInfo:
    """Replace the survey's schema.  Question categories may not change."""
    return await bounded(settings, service.update_survey(
        db, admin=admin, survey_id=survey_id, schema=body.schema_,
    ))


@router.put("/{survey_id}/status")
async def set_status(
    survey_id: int,
    body: SetStatusRequest,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> SurveyInfo:
    """Publish or unpublish a survey."""
    return await bounded(settings, service.set_status(
        db, admin=admin, survey_id=survey_id, status=body.status,
    ))


@router.delete("/{survey_id}", status_code=204)
async def delete_survey(
    survey_id: int,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> None:
    """Delete a survey.  Its answer records and counters are kept."""
    await bounded(settings, service.delete_survey(db, admin=admin, survey_id=survey_id))


@router.get("/{survey_id}/stats")
async def get_stats(
    survey_id: int,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
) -> StatsReport:
    """Per-option counts, including options removed by later revisions."""
    return await bounded(settings, service.get_stats(db, admin=admin, survey_id=survey_id))
