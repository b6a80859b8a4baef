from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from hivecommunity.api.deps import (
    CurrentActor,
    get_current_hive,
    get_hive_service,
    get_lifecycle,
)
from hivecommunity.core.config import settings
from hivecommunity.core.exceptions import AuthorizationError, NotFoundError
from hivecommunity.schemas.applications import (
    ApplicationCreated,
    ApprovalResponse,
    DecisionRequest,
    MemberApplicationCreate,
    PendingPageResponse,
    RejectionResponse,
    approval_response,
    decision_note,
)
from hivecommunity.services.application_lifecycle import ApplicationKind, ApplicationLifecycle
from hivecommunity.services.document_store import Document
from hivecommunity.services.hive_service import HiveService

router = APIRouter(prefix="/members", tags=["Members"])


async def _own_application(lifecycle: ApplicationLifecycle, application_id: str, hive: CurrentActor) -> Document:
    """Pending application addressed to the leader's hive"""
    application = await lifecycle.get_application(ApplicationKind.MEMBER, application_id)
    if application is None:
        raise NotFoundError("Member application", application_id)
    if application.get("selectedHiveId") != hive.actor_id:
        raise AuthorizationError("This application was made to another hive")
    return application


@router.post("/applications", response_model=ApplicationCreated, status_code=status.HTTP_201_CREATED)
async def submit_member_application(
    application: MemberApplicationCreate,
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    """Apply to join an approved hive"""
    application_id = await lifecycle.submit(ApplicationKind.MEMBER, application.model_dump(exclude_none=True))
    return ApplicationCreated(id=application_id)


@router.get("/applications", response_model=PendingPageResponse)
async def list_member_applications(
    limit: int = Query(settings.PENDING_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    """Pending applications to the leader's hive, newest first"""
    page = await lifecycle.list_pending(ApplicationKind.MEMBER, scope_id=hive.actor_id, limit=limit, offset=offset)
    return PendingPageResponse(applications=page.applications, has_more=page.has_more)


@router.get("/applications/{application_id}")
async def get_member_application(
    application_id: str,
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    return await _own_application(lifecycle, application_id, hive)


@router.post("/applications/{application_id}/approve", response_model=ApprovalResponse)
async def approve_member_application(
    application_id: str,
    decision: Optional[DecisionRequest] = None,
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    """Approve a member and return their login credentials (shown once)"""
    await _own_application(lifecycle, application_id, hive)
    result = await lifecycle.approve(ApplicationKind.MEMBER, application_id, hive.actor_id, decision_note(decision))
    return approval_response(result)


@router.post("/applications/{application_id}/reject", response_model=RejectionResponse)
async def reject_member_application(
    application_id: str,
    decision: Optional[DecisionRequest] = None,
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
):
    await _own_application(lifecycle, application_id, hive)
    rejected_id = await lifecycle.reject(ApplicationKind.MEMBER, application_id, hive.actor_id, decision_note(decision))
    return RejectionResponse(rejected_id=rejected_id)


@router.get("/approved")
async def list_approved_members(
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
) -> List[Dict[str, Any]]:
    return await lifecycle.get_approved_members(hive.actor_id)


@router.get("/rejected")
async def list_rejected_members(
    hive: CurrentActor = Depends(get_current_hive),
    lifecycle: ApplicationLifecycle = Depends(get_lifecycle),
) -> List[Dict[str, Any]]:
    return await lifecycle.get_rejected_members(hive.actor_id)


@router.get("/stats")
async def member_stats(
    hive: CurrentActor = Depends(get_current_hive),
    hive_service: HiveService = Depends(get_hive_service),
) -> Dict[str, int]:
    return await hive_service.member_stats(hive.actor_id)
