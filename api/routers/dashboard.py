"""
Dashboard API Endpoints.

Reminder queue, manual refresh and the option lists behind the filter panel.
"""

from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_context, require_user
from api.models import OptionsResponse, ReminderResponse
from domain.lead import COURSES, LEAD_SOURCES, PROFESSIONS, PROGRAM_TYPES, LeadStatus, PipelineStage
from services.app_context import AppContext

router = APIRouter(dependencies=[Depends(require_user)])


@router.get(
    "/reminders",
    response_model=List[ReminderResponse],
    summary="Reminder Queue",
    description="Leads with a reminder, earliest due first."
)
def list_reminders(context: AppContext = Depends(get_context)):
    return [ReminderResponse.from_domain(entry) for entry in context.dashboard.reminders()]


@router.post("/refresh", summary="Refresh Leads")
async def refresh(context: AppContext = Depends(get_context)):
    """Refetch leads from the CRM service. On failure the previous data is kept."""
    applied = await context.dashboard.refresh()
    return {"refreshed": applied, "total": len(context.dashboard.board.leads)}


@router.get("/options", response_model=OptionsResponse, summary="Filter Options")
def get_options(context: AppContext = Depends(get_context)):
    return OptionsResponse(
        courses=list(COURSES),
        program_types=list(PROGRAM_TYPES),
        professions=list(PROFESSIONS),
        sources=list(LEAD_SOURCES),
        statuses=[status.value for status in LeadStatus],
        pipelines=[stage.value for stage in PipelineStage],
        staff=context.dashboard.board.staff_usernames(),
    )
