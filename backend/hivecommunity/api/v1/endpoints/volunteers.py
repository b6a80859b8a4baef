from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from hivecommunity.api.deps import (
    get_current_member_record,
    get_store,
    get_volunteer_service,
    require_admin,
)
from hivecommunity.core.exceptions import AuthorizationError
from hivecommunity.schemas.applications import ApplicationCreated
from hivecommunity.schemas.volunteers import (
    ApplicationReview,
    MarkReadResponse,
    OpportunityActivation,
    OpportunityCreate,
    VolunteerApply,
)
from hivecommunity.services.document_store import Collections, Document, DocumentStore
from hivecommunity.services.volunteer_service import VolunteerService, notification_address

router = APIRouter(prefix="/volunteers", tags=["Volunteers"])


# ==================== OPPORTUNITIES ====================

@router.get("/opportunities")
async def list_opportunities(
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> List[Dict[str, Any]]:
    """Open opportunities with remaining spots and event details"""
    return await volunteer_service.list_open()


@router.post("/opportunities", status_code=status.HTTP_201_CREATED)
async def create_opportunity(
    opportunity: OpportunityCreate,
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> Dict[str, Any]:
    """Publish an opportunity and notify approved members"""
    return await volunteer_service.create_opportunity(opportunity.model_dump(exclude_none=True), admin_id)


@router.patch("/opportunities/{opportunity_id}")
async def set_opportunity_active(
    opportunity_id: str,
    activation: OpportunityActivation,
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> Dict[str, Any]:
    return await volunteer_service.set_active(opportunity_id, activation.isActive)


@router.post(
    "/opportunities/{opportunity_id}/apply",
    response_model=ApplicationCreated,
    status_code=status.HTTP_201_CREATED,
)
async def apply_for_opportunity(
    opportunity_id: str,
    application: VolunteerApply,
    member: Document = Depends(get_current_member_record),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
):
    application_id = await volunteer_service.apply(opportunity_id, {
        **application.model_dump(),
        "memberEmail": notification_address(member),
        "memberName": member.get("name"),
        "hiveName": member.get("selectedHiveName"),
    })
    return ApplicationCreated(id=application_id)


# ==================== MEMBER VIEWS ====================

@router.get("/applications/mine")
async def my_applications(
    member: Document = Depends(get_current_member_record),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> List[Dict[str, Any]]:
    return await volunteer_service.member_applications(notification_address(member))


@router.get("/notifications")
async def my_notifications(
    member: Document = Depends(get_current_member_record),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> List[Dict[str, Any]]:
    """Unread notifications, newest first"""
    return await volunteer_service.notifications(notification_address(member))


@router.post("/notifications/{notification_id}/read", response_model=MarkReadResponse)
async def mark_notification_read(
    notification_id: str,
    member: Document = Depends(get_current_member_record),
    store: DocumentStore = Depends(get_store),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
):
    notification = await store.get(Collections.VOLUNTEER_NOTIFICATIONS, notification_id)
    if notification is None:
        return MarkReadResponse(success=False)
    if notification.get("memberEmail") != (notification_address(member) or "").strip().lower():
        raise AuthorizationError("This notification belongs to another member")
    return MarkReadResponse(success=await volunteer_service.mark_read(notification_id))


# ==================== ADMIN ====================

@router.get("/applications")
async def list_applications(
    volunteer_id: Optional[str] = Query(None, alias="volunteerId"),
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> List[Dict[str, Any]]:
    return await volunteer_service.applications_for_admin(volunteer_id)


@router.post("/applications/{application_id}/approve")
async def approve_application(
    application_id: str,
    review: Optional[ApplicationReview] = None,
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> Dict[str, str]:
    await volunteer_service.review_application(application_id, "approved", admin_id, review.note if review else "")
    return {"id": application_id, "status": "approved"}


@router.post("/applications/{application_id}/reject")
async def reject_application(
    application_id: str,
    review: Optional[ApplicationReview] = None,
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> Dict[str, str]:
    await volunteer_service.review_application(application_id, "rejected", admin_id, review.note if review else "")
    return {"id": application_id, "status": "rejected"}


@router.get("/stats")
async def volunteer_stats(
    admin_id: str = Depends(require_admin),
    volunteer_service: VolunteerService = Depends(get_volunteer_service),
) -> Dict[str, int]:
    return await volunteer_service.statistics()
