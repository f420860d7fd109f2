"""
Lead API Endpoints.

Filtered lead list, lead detail and every lead mutation. All routes require an
authenticated session.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.dependencies import get_context, require_user, to_http_error
from api.models import (
    LeadDetailResponse,
    LeadFormRequest,
    LeadListResponse,
    LeadPatchRequest,
    LeadSummaryResponse,
    RemarkRequest,
    StatusCountsResponse,
)
from domain.lead_filter import SELECTION_CATEGORIES, FilterState
from services.app_context import AppContext
from services.errors import DashboardError

router = APIRouter(dependencies=[Depends(require_user)])

# PATCH fields where null means "clear"
_CLEARABLE_FIELDS = frozenset({"assigned_to", "reminder_at"})


def _filters_applied(query: str, filters: FilterState) -> Dict[str, Any]:
    applied: Dict[str, Any] = {}
    if query:
        applied["q"] = query
    for category in SELECTION_CATEGORIES:
        selected = getattr(filters, category)
        if selected:
            applied[category] = list(selected)
    if filters.from_date:
        applied["from_date"] = filters.from_date.isoformat()
    if filters.to_date:
        applied["to_date"] = filters.to_date.isoformat()
    return applied


@router.get(
    "/leads",
    response_model=LeadListResponse,
    summary="Query Leads",
    description="Search and filter the working set; counts follow the filtered list."
)
def list_leads(
    q: str = Query("", description="Search by name or phone"),
    course: List[str] = Query([], description="Course title (repeatable)"),
    program_type: List[str] = Query([], description="Program type (repeatable)"),
    profession: List[str] = Query([], description="Profession (repeatable)"),
    source: List[str] = Query([], description="Lead source (repeatable)"),
    status: List[str] = Query([], description="Hot / Warm / Cold (repeatable)"),
    pipeline: List[str] = Query([], description="Pipeline stage (repeatable)"),
    assigned: List[str] = Query([], description="Assigned staff username (repeatable)"),
    from_date: Optional[date] = Query(None, description="Created on or after (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Created on or before (YYYY-MM-DD, inclusive)"),
    context: AppContext = Depends(get_context),
):
    """
    **Example usage:**
    - Hot leads: `GET /api/v1/leads?status=Hot`
    - WhatsApp leads created in March: `GET /api/v1/leads?source=WhatsApp&from_date=2025-03-01&to_date=2025-03-31`
    """
    filters = FilterState(
        courses=tuple(course),
        program_types=tuple(program_type),
        professions=tuple(profession),
        sources=tuple(source),
        statuses=tuple(status),
        pipelines=tuple(pipeline),
        assigned_users=tuple(assigned),
        from_date=from_date,
        to_date=to_date,
    )
    view = context.dashboard.visible(q, filters)
    return LeadListResponse(
        items=[LeadSummaryResponse.from_domain(lead) for lead in view.leads],
        counts=StatusCountsResponse.from_domain(view.counts),
        filters_applied=_filters_applied(q, filters),
    )


@router.get("/leads/{lead_id}", response_model=LeadDetailResponse, summary="Lead Detail")
def get_lead(lead_id: str, context: AppContext = Depends(get_context)):
    try:
        lead = context.dashboard.select(lead_id)
    except DashboardError as e:
        raise to_http_error(e)
    return LeadDetailResponse.from_domain(lead)


def _form_fields(request: LeadFormRequest) -> Dict[str, Any]:
    return {name: value for name, value in request.model_dump().items() if value is not None}


@router.post("/leads", status_code=201, summary="Add Lead")
async def create_lead(request: LeadFormRequest, response: Response, context: AppContext = Depends(get_context)):
    try:
        created = await context.dashboard.create_lead(_form_fields(request))
    except DashboardError as e:
        raise to_http_error(e)
    if created is None:
        response.status_code = 202
        return {"success": True}
    return LeadDetailResponse.from_domain(created)


@router.put("/leads/{lead_id}", response_model=LeadDetailResponse, summary="Edit Lead")
async def edit_lead(lead_id: str, request: LeadFormRequest, context: AppContext = Depends(get_context)):
    try:
        lead = await context.dashboard.edit_lead(lead_id, _form_fields(request))
    except DashboardError as e:
        raise to_http_error(e)
    return LeadDetailResponse.from_domain(lead)


@router.patch(
    "/leads/{lead_id}",
    response_model=LeadDetailResponse,
    summary="Update Lead Fields",
    description="Status, pipeline, assignment (admin only) and reminder changes."
)
async def patch_lead(lead_id: str, request: LeadPatchRequest, context: AppContext = Depends(get_context)):
    changes = {
        name: value
        for name, value in request.model_dump(exclude_unset=True).items()
        if value is not None or name in _CLEARABLE_FIELDS
    }
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    dashboard = context.dashboard
    try:
        if "assigned_to" in changes:
            lead = await dashboard.assign(lead_id, changes.pop("assigned_to"))
        if changes:
            lead = await dashboard.update_fields(lead_id, **changes)
    except DashboardError as e:
        raise to_http_error(e)
    return LeadDetailResponse.from_domain(lead)


@router.delete("/leads/{lead_id}", status_code=204, summary="Delete Lead")
async def delete_lead(
    lead_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    context: AppContext = Depends(get_context),
):
    try:
        await context.dashboard.delete_lead(lead_id, confirmed=confirm)
    except DashboardError as e:
        raise to_http_error(e)
    return Response(status_code=204)


@router.post("/leads/{lead_id}/remarks", response_model=LeadDetailResponse, summary="Add Remark")
async def add_remark(lead_id: str, request: RemarkRequest, context: AppContext = Depends(get_context)):
    try:
        lead = await context.dashboard.add_remark(lead_id, request.remark)
    except DashboardError as e:
        raise to_http_error(e)
    if lead is None:
        raise HTTPException(status_code=400, detail="Remark cannot be blank")
    return LeadDetailResponse.from_domain(lead)


@router.delete(
    "/leads/{lead_id}/remarks/{remark_id}",
    response_model=LeadDetailResponse,
    summary="Delete Remark"
)
async def delete_remark(lead_id: str, remark_id: str, context: AppContext = Depends(get_context)):
    try:
        lead = await context.dashboard.delete_remark(lead_id, remark_id)
    except DashboardError as e:
        raise to_http_error(e)
    return LeadDetailResponse.from_domain(lead)
