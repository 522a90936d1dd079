"""Admin result endpoints — paginated answer records for one survey."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from survey_core.models.identity import AdminIdentity
from survey_core.models.survey import ResultPage
from survey_core.service import SurveyService

from survey_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT, ServerSettings
from survey_server.dependencies import bounded, get_admin, get_db, get_service, get_settings

router = APIRouter(prefix="/admin/surveys", tags=["admin-results"])


@router.get("/{survey_id}/results")
async def list_results(
    survey_id: int,
    admin: AdminIdentity = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    settings: ServerSettings = Depends(get_settings),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> ResultPage:
    """List answer records newest first, with option ids rendered as texts."""
    return await bounded(settings, service.list_results(
        db, admin=admin, survey_id=survey_id, limit=limit, offset=offset,
    ))
