"""
Volunteer Matching Workflow

Admins publish opportunities (``volunteers``), approved members apply
(``volunteer_applications``) and get told about new opportunities through
``volunteer_notifications``.

Applications are decided in place through the lifecycle engine. Notification
fan-out is best effort: recipients are written in bounded batches and a
failing batch is logged and skipped without stopping the rest.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from hivecommunity.core.config import Settings, settings as default_settings
from hivecommunity.core.exceptions import (
    DuplicateApplicationError,
    HiveError,
    NotFoundError,
    ValidationError,
)
from hivecommunity.services import statistics
from hivecommunity.services.application_lifecycle import (
    ApplicationKind,
    ApplicationLifecycle,
    ApplicationStatus,
)
from hivecommunity.services.document_store import (
    Collections,
    Document,
    DocumentStore,
    get_field,
    sort_documents,
    utc_timestamp,
)
from hivecommunity.services.event_service import coerce_number

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE = "volunteer_opportunity"
NOTIFICATION_TITLE = "New Volunteer Opportunity Available!"

APPLICATION_OPTIONAL_FIELDS = {
    "hiveName": None,
    "phone": "",
    "skills": [],
    "experience": "",
    "availability": "",
    "motivation": "",
}


@dataclass(frozen=True)
class FanOutResult:
    created: int = 0
    failed: int = 0
    skipped: int = 0


def notification_address(member: Mapping[str, Any]) -> Optional[str]:
    """Where a member's notifications go: personal email, else login identifier"""
    return member.get("email") or get_field(dict(member), "credentials.email")


def _email_key(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class VolunteerService:
    def __init__(
        self,
        store: DocumentStore,
        lifecycle: Optional[ApplicationLifecycle] = None,
        config: Settings = default_settings,
    ):
        self.store = store
        self.lifecycle = lifecycle or ApplicationLifecycle(store, config)
        self.config = config

    # ==================== OPPORTUNITIES ====================

    async def create_opportunity(self, payload: Mapping[str, Any], admin_id: str) -> Document:
        """Publish an opportunity, then notify approved members (best effort)"""
        title = (payload.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required", errors=["Title is required"], missing_fields=["title"])

        if payload.get("eventId"):
            if await self.store.get(Collections.EVENTS, payload["eventId"]) is None:
                raise NotFoundError("Event", payload["eventId"])

        now = utc_timestamp()
        record = {k: v for k, v in payload.items() if k != "id"}
        record.update({
            "title": title,
            "maxVolunteers": coerce_number("maxVolunteers", payload.get("maxVolunteers")),
            "isActive": bool(payload.get("isActive", True)),
            "createdBy": admin_id,
            "createdAt": now,
            "updatedAt": now,
        })
        opportunity_id = await self.store.add(Collections.VOLUNTEERS, record)
        opportunity = {"id": opportunity_id, **record}
        logger.info(f"Volunteer opportunity created: {opportunity_id} ({title})")

        if opportunity["isActive"]:
            try:
                await self.fan_out_notifications(opportunity)
            except HiveError as e:
                logger.error(f"Notification fan-out for {opportunity_id} failed: {e}", exc_info=True)
        return opportunity

    async def set_active(self, opportunity_id: str, is_active: bool) -> Document:
        return await self.store.update(Collections.VOLUNTEERS, opportunity_id, {
            "isActive": is_active,
            "updatedAt": utc_timestamp(),
        })

    async def _approved_count(self, opportunity_id: str) -> int:
        return await self.store.count(
            Collections.VOLUNTEER_APPLICATIONS,
            filters={"volunteerId": opportunity_id, "status": ApplicationStatus.APPROVED.value},
        )

    async def _event_summary(self, event_id: Optional[str]) -> Optional[Document]:
        if not event_id:
            return None
        try:
            return await self.store.get(Collections.EVENTS, event_id)
        except HiveError as e:
            logger.warning(f"Could not load event {event_id} for opportunity: {e}")
            return None

    async def list_open(self) -> List[Document]:
        """Active opportunities with live application counts and their event, newest first"""
        opportunities = await self.store.query(
            Collections.VOLUNTEERS, filters={"isActive": True}, order_by="createdAt", descending=True
        )
        annotated = []
        for opportunity in opportunities:
            approved = await self._approved_count(opportunity["id"])
            max_volunteers = opportunity.get("maxVolunteers") or 0
            annotated.append({
                **opportunity,
                "event": await self._event_summary(opportunity.get("eventId")),
                "currentApplications": approved,
                # None when the opportunity has no cap
                "spotsRemaining": max(max_volunteers - approved, 0) if max_volunteers else None,
            })
        return annotated

    # ==================== APPLICATIONS ====================

    async def apply(self, opportunity_id: str, member_payload: Mapping[str, Any]) -> str:
        """Apply to an opportunity; one application per member email.

        Raises:
            NotFoundError: unknown opportunity
            ValidationError: missing fields, or opportunity closed or full
            DuplicateApplicationError: this email already applied
        """
        payload = {**APPLICATION_OPTIONAL_FIELDS, **dict(member_payload)}
        payload["volunteerId"] = opportunity_id
        payload["memberEmail"] = _email_key(payload.get("memberEmail"))
        record = self.lifecycle.prepare_submission(ApplicationKind.VOLUNTEER, payload)

        async with self.store.transaction() as tx:
            opportunity = await tx.get(Collections.VOLUNTEERS, opportunity_id, for_update=True)
            if opportunity is None:
                raise NotFoundError("Volunteer opportunity", opportunity_id)
            if not opportunity.get("isActive"):
                raise ValidationError(
                    "This volunteer opportunity is closed",
                    errors=["Volunteer opportunity is not accepting applications"],
                )

            existing = await tx.query(
                Collections.VOLUNTEER_APPLICATIONS,
                filters={"volunteerId": opportunity_id, "memberEmail": record["memberEmail"]},
                limit=1,
            )
            if existing:
                raise DuplicateApplicationError(opportunity_id, record["memberEmail"])

            max_volunteers = opportunity.get("maxVolunteers") or 0
            if max_volunteers:
                approved = await tx.query(
                    Collections.VOLUNTEER_APPLICATIONS,
                    filters={"volunteerId": opportunity_id, "status": ApplicationStatus.APPROVED.value},
                )
                if len(approved) >= max_volunteers:
                    raise ValidationError(
                        "This volunteer opportunity is full",
                        errors=["No volunteer spots remaining"],
                    )

            application_id = await tx.add(Collections.VOLUNTEER_APPLICATIONS, record)

        logger.info(f"Volunteer application {application_id} for {opportunity_id} from {record['memberEmail']}")
        return application_id

    async def _with_opportunity(self, applications: List[Document]) -> List[Document]:
        joined = []
        for application in applications:
            opportunity = await self.store.get(Collections.VOLUNTEERS, application.get("volunteerId", ""))
            joined.append({**application, "opportunity": opportunity})
        return sort_documents(joined, "appliedAt", descending=True)

    async def member_applications(self, member_email: str) -> List[Document]:
        applications = await self.store.query(
            Collections.VOLUNTEER_APPLICATIONS, filters={"memberEmail": _email_key(member_email)}
        )
        return await self._with_opportunity(applications)

    async def applications_for_admin(self, volunteer_id: Optional[str] = None) -> List[Document]:
        filters = {"volunteerId": volunteer_id} if volunteer_id else None
        applications = await self.store.query(Collections.VOLUNTEER_APPLICATIONS, filters=filters)
        return await self._with_opportunity(applications)

    async def review_application(self, application_id: str, status: str, admin_id: str, note: str = "") -> None:
        decision = ApplicationStatus(status)
        if decision == ApplicationStatus.APPROVED:
            await self.lifecycle.approve(ApplicationKind.VOLUNTEER, application_id, admin_id, note)
        elif decision == ApplicationStatus.REJECTED:
            await self.lifecycle.reject(ApplicationKind.VOLUNTEER, application_id, admin_id, note)
        else:
            raise ValidationError(
                f"Cannot set application status to '{status}'",
                errors=["status must be approved or rejected"],
            )

    # ==================== NOTIFICATIONS ====================

    async def fan_out_notifications(self, opportunity: Mapping[str, Any]) -> FanOutResult:
        """One notification per approved member, written in bounded batches"""
        members = await self.store.query(Collections.MEMBERS_APPROVED)
        title = opportunity.get("title") or "Volunteer Position"
        now = utc_timestamp()

        notifications = []
        skipped = 0
        for member in members:
            address = notification_address(member)
            if not address:
                skipped += 1
                continue
            notifications.append({
                "type": NOTIFICATION_TYPE,
                "title": NOTIFICATION_TITLE,
                "message": (
                    f'A new volunteer opportunity "{title}" is now open for applications. '
                    "Join us and make a difference!"
                ),
                "memberEmail": _email_key(address),
                "memberName": member.get("name"),
                "opportunityId": opportunity.get("id"),
                "opportunityTitle": opportunity.get("title"),
                "isRead": False,
                "createdAt": now,
            })

        batch_size = max(1, self.config.NOTIFICATION_BATCH_SIZE)
        created = failed = 0
        for start in range(0, len(notifications), batch_size):
            batch = notifications[start:start + batch_size]
            try:
                async with self.store.transaction() as tx:
                    for notification in batch:
                        await tx.add(Collections.VOLUNTEER_NOTIFICATIONS, notification)
                created += len(batch)
            except HiveError as e:
                failed += len(batch)
                logger.error(
                    f"Notification batch {start // batch_size + 1} for {opportunity.get('id')} failed: {e}",
                    exc_info=True,
                )

        logger.info(
            f"Volunteer notifications for {opportunity.get('id')}: "
            f"{created} created, {failed} failed, {skipped} skipped"
        )
        return FanOutResult(created=created, failed=failed, skipped=skipped)

    async def notifications(self, member_email: str) -> List[Document]:
        """Unread notifications newest first; lookup errors yield an empty list"""
        try:
            notifications = await self.store.query(
                Collections.VOLUNTEER_NOTIFICATIONS,
                filters={"memberEmail": _email_key(member_email), "isRead": False},
                order_by="createdAt",
                descending=True,
            )
        except HiveError as e:
            logger.error(f"Could not load notifications for {member_email}: {e}", exc_info=True)
            return []
        return notifications

    async def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read; failures are logged, never raised"""
        try:
            await self.store.update(Collections.VOLUNTEER_NOTIFICATIONS, notification_id, {
                "isRead": True,
                "readAt": utc_timestamp(),
            })
        except HiveError as e:
            logger.warning(f"Could not mark notification {notification_id} as read: {e}")
            return False
        return True

    # ==================== STATS ====================

    async def statistics(self) -> Dict[str, int]:
        opportunities = await self.store.query(Collections.VOLUNTEERS)
        applications = await self.store.query(Collections.VOLUNTEER_APPLICATIONS)
        return statistics.volunteer_stats(opportunities, applications)
