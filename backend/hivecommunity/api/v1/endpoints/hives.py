from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from hivecommunity.api.deps import (
    CurrentActor,
    get_current_hive,
    get_hive_service,
    get_lifecycle,
    require_admin,
)
from hivecommunity.core.config import settings
from hivecommunity.schemas.applications import (
    ApplicationCreated,
    ApprovalResponse,
    DecisionRequest,
    HiveApplicationCreate,
    PendingPageResponse,
    RejectionResponse,
    approval_response,
    decision_note,
)
from hivecommunity.services.application_lifecycle import ApplicationKind, ApplicationLifecycle
from hivecommunity.services.hive_service import HiveService

router = APIRouter(prefix="/hives", tags=["Hives"])


@router.post("/applications", response_model=ApplicationCreated, status_code=status.HTTP_201_CREATED)
async def submit_hive_application(
    application: HiveApplicationCreate,
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    """Register a new hive; it waits for admin approval"""
    application_id = await lifecycle.submit(ApplicationKind.HIVE, application.model_dump(exclude_none=True))
    return ApplicationCreated(id=application_id)


@router.get("/applications", response_model=PendingPageResponse)
async def list_hive_applications(
    limit: int = Query(settings.PENDING_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: str = Depends(require_admin),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    page = await lifecycle.list_pending(ApplicationKind.HIVE, limit=limit, offset=offset)
    return PendingPageResponse(applications=page.applications, has_more=page.has_more)


@router.post("/applications/{application_id}/approve", response_model=ApprovalResponse)
async def approve_hive_application(
    application_id: str,
    decision: Optional[DecisionRequest] = None,
    admin_id: str = Depends(require_admin),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    """Approve a hive and return its login credentials (shown once)"""
    result = await lifecycle.approve(ApplicationKind.HIVE, application_id, admin_id, decision_note(decision))
    return approval_response(result)


@router.post("/applications/{application_id}/reject", response_model=RejectionResponse)
async def reject_hive_application(
    application_id: str,
    decision: Optional[DecisionRequest] = None,
    admin_id: str = Depends(require_admin),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    rejected_id = await lifecycle.reject(ApplicationKind.HIVE, application_id, admin_id, decision_note(decision))
    return RejectionResponse(rejected_id=rejected_id)


@router.get("/approved")
async def list_approved_hives(hive_service: HiveService = Depends(get_hive_service)) -> List[Dict[str, Any]]:
    """Approved hives a member can apply to join"""
    return await hive_service.approved_for_selection()


@router.get("")
async def list_hives(
    status_filter: Optional[str] = Query(None, alias="status"),
    admin_id: str = Depends(require_admin),
    hive_service: HiveService = Depends(get_hive_service),
) -> List[Dict[str, Any]]:
    if status_filter:
        return await hive_service.get_by_status(status_filter)
    return await hive_service.get_all()


@router.get("/search")
async def search_hives(
    q: str = Query("", max_length=100),
    admin_id: str = Depends(require_admin),
    hive_service: HiveService = Depends(get_hive_service),
) -> List[Dict[str, Any]]:
    return await hive_service.search(q)


@router.get("/dashboard")
async def hive_dashboard(
    hive: CurrentActor = Depends(get_current_hive),
    hive_service: HiveService = Depends(get_hive_service),
) -> Dict[str, Any]:
    return await hive_service.dashboard(hive.actor_id)
