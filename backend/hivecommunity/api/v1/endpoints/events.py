from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from hivecommunity.api.deps import (
    CurrentActor,
    get_current_hive,
    get_current_member,
    get_event_service,
    require_admin,
)
from hivecommunity.schemas.events import EventCreate, EventReview, EventStatusUpdate, EventUpdate
from hivecommunity.services.event_service import EventService

router = APIRouter(prefix="/events", tags=["Events"])


def _hive_context(hive: CurrentActor) -> Dict[str, Any]:
    return {
        "hiveId": hive.actor_id,
        "hiveName": hive.hive_name,
        "creatorName": hive.name,
        "email": hive.email,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, Any]:
    """Create an event for the leader's hive (starts as draft, pending approval)"""
    return await event_service.create(event.model_dump(exclude_none=True), _hive_context(hive))


@router.post("/admin", status_code=status.HTTP_201_CREATED)
async def create_admin_event(
    event: EventCreate,
    admin_id: str = Depends(require_admin),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, Any]:
    """Create an event shown to members of every hive"""
    return await event_service.create(event.model_dump(exclude_none=True), None)


@router.get("")
async def list_events(
    status_filter: Optional[str] = Query(None, alias="status"),
    approval: Optional[str] = Query(None, alias="approvalStatus"),
    admin_id: str = Depends(require_admin),
    event_service: EventService = Depends(get_event_service),
) -> List[Dict[str, Any]]:
    if status_filter:
        return await event_service.list_by_status(status_filter)
    if approval:
        return await event_service.list_by_approval(approval)
    return await event_service.list_all()


@router.get("/upcoming")
async def upcoming_events(event_service: EventService = Depends(get_event_service)) -> List[Dict[str, Any]]:
    return await event_service.upcoming()


@router.get("/mine")
async def my_hive_events(
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
) -> List[Dict[str, Any]]:
    return await event_service.list_by_hive(hive.actor_id)


@router.get("/member")
async def member_events(
    upcoming: bool = False,
    member: CurrentActor = Depends(get_current_member),
    event_service: EventService = Depends(get_event_service),
) -> List[Dict[str, Any]]:
    """The member's hive events plus admin events"""
    if upcoming:
        return await event_service.upcoming_for_member(member.hive_id)
    return await event_service.for_member(member.hive_id)


@router.get("/stats")
async def event_stats(
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, int]:
    return await event_service.statistics(hive.actor_id)


@router.patch("/{event_id}/status")
async def set_event_status(
    event_id: str,
    update: EventStatusUpdate,
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, Any]:
    await event_service.get_owned(event_id, hive.actor_id)
    return await event_service.set_status(event_id, update.status)


@router.patch("/{event_id}")
async def update_event(
    event_id: str,
    update: EventUpdate,
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, Any]:
    await event_service.get_owned(event_id, hive.actor_id)
    return await event_service.update(event_id, update.model_dump())


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    hive: CurrentActor = Depends(get_current_hive),
    event_service: EventService = Depends(get_event_service),
):
    await event_service.get_owned(event_id, hive.actor_id)
    await event_service.delete(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/review")
async def review_event(
    event_id: str,
    review: EventReview,
    admin_id: str = Depends(require_admin),
    event_service: EventService = Depends(get_event_service),
) -> Dict[str, Any]:
    """Admin approval decision"""
    return await event_service.review(event_id, review.approval_status, admin_id, review.comments)
