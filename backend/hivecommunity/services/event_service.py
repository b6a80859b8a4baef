"""
Event Approval Workflow

Events carry two independent state axes:

- ``status`` (operational, set by the hive leader): draft, active, completed,
  cancelled. Any state may be set from any other.
- ``approvalStatus`` (set by an admin): pending, approved, rejected. Records
  written before the field existed read as pending.

Dates are stored as the caller supplied them; past or out-of-order dates
are accepted.
"""

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from hivecommunity.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from hivecommunity.services import statistics
from hivecommunity.services.document_store import (
    Collections,
    Document,
    DocumentStore,
    sort_documents,
    utc_timestamp,
)
from hivecommunity.services.validators import validate_event_data

logger = logging.getLogger(__name__)


class EventStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EventType(str, Enum):
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    HACKATHON = "hackathon"
    NETWORKING = "networking"
    COMPETITION = "competition"
    CONFERENCE = "conference"
    SOCIAL = "social"
    TRAINING = "training"
    OTHER = "other"


NUMERIC_FIELDS = ("maxParticipants", "registrationFees", "numberOfVolunteers", "estimatedBudget")

# Owned by the review step or the store, never by a leader's edit
PROTECTED_FIELDS = frozenset({
    "id", "createdAt", "hiveId", "hiveName", "creatorEmail",
    "approvalStatus", "adminComments", "approvedAt", "approvedBy",
    "rejectedAt", "rejectedBy", "reviewedAt",
})

ADMIN_HIVE_NAME = "admin"


def coerce_number(field_name: str, value: Any) -> Any:
    """Blank numeric input becomes 0; numeric strings become numbers"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", errors=[f"{field_name} must be a number"])
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        raise ValidationError(f"{field_name} must be a number", errors=[f"{field_name} must be a number"])
    return int(number) if number.is_integer() else number


def parse_enum(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid {field_name} '{value}'",
            errors=[f"{field_name} must be one of: {allowed}"],
        )


def is_admin_event(event: Mapping[str, Any]) -> bool:
    hive_name = event.get("hiveName")
    return not hive_name or hive_name == ADMIN_HIVE_NAME or event.get("organizerType") == "admin"


def _today() -> date:
    return datetime.now(timezone.utc).date()


class EventService:
    def __init__(self, store: DocumentStore):
        self.store = store

    # ==================== WRITES ====================

    async def create(self, payload: Mapping[str, Any], hive: Optional[Mapping[str, Any]] = None) -> Document:
        """Store a new event; ``hive`` is None for admin-organized events"""
        validate_event_data(payload).raise_for_errors("Event")
        parse_enum(EventType, payload.get("eventType"), "eventType")

        record = {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}
        for field_name in NUMERIC_FIELDS:
            record[field_name] = coerce_number(field_name, record.get(field_name))
        record["sponsorshipNeeded"] = bool(record.get("sponsorshipNeeded", False))
        record["status"] = parse_enum(EventStatus, record.get("status") or EventStatus.DRAFT.value, "status").value

        if hive:
            record.update({
                "hiveId": hive.get("hiveId"),
                "hiveName": hive.get("hiveName"),
                "creatorName": record.get("creatorName") or hive.get("creatorName"),
                "creatorEmail": hive.get("email"),
            })
        else:
            record.update({"hiveName": ADMIN_HIVE_NAME, "organizerType": "admin"})

        now = utc_timestamp()
        record.update({
            "approvalStatus": ApprovalStatus.PENDING.value,
            "adminComments": "",
            "createdAt": now,
            "updatedAt": now,
        })

        event_id = await self.store.add(Collections.EVENTS, record)
        logger.info(f"Event created: {event_id} ({record.get('eventName')}) for {record['hiveName']}")
        return {"id": event_id, **record}

    async def set_status(self, event_id: str, status: str) -> Document:
        new_status = parse_enum(EventStatus, status, "status")
        event = await self.store.update(Collections.EVENTS, event_id, {
            "status": new_status.value,
            "updatedAt": utc_timestamp(),
        })
        logger.info(f"Event {event_id} status set to {new_status.value}")
        return event

    async def update(self, event_id: str, fields: Mapping[str, Any]) -> Document:
        changes = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
        if "status" in changes:
            changes["status"] = parse_enum(EventStatus, changes["status"], "status").value
        if "eventType" in changes:
            changes["eventType"] = parse_enum(EventType, changes["eventType"], "eventType").value
        for field_name in NUMERIC_FIELDS:
            if field_name in changes:
                changes[field_name] = coerce_number(field_name, changes[field_name])
        changes["updatedAt"] = utc_timestamp()
        return await self.store.update(Collections.EVENTS, event_id, changes)

    async def delete(self, event_id: str) -> None:
        """Hard delete; volunteer opportunities pointing at the event are left as they are"""
        if not await self.store.delete(Collections.EVENTS, event_id):
            raise NotFoundError("Event", event_id)
        logger.info(f"Event deleted: {event_id}")

    async def review(self, event_id: str, approval_status: str, admin_id: str, comments: str = "") -> Document:
        """Admin decision on the approval axis"""
        decision = parse_enum(ApprovalStatus, approval_status, "approvalStatus")
        now = utc_timestamp()
        fields: Dict[str, Any] = {
            "approvalStatus": decision.value,
            "adminComments": comments,
            "reviewedAt": now,
            "updatedAt": now,
        }
        if decision == ApprovalStatus.APPROVED:
            fields.update({"approvedAt": now, "approvedBy": admin_id})
        elif decision == ApprovalStatus.REJECTED:
            fields.update({"rejectedAt": now, "rejectedBy": admin_id})

        event = await self.store.update(Collections.EVENTS, event_id, fields)
        logger.info(f"Event {event_id} reviewed: {decision.value} by {admin_id}")
        return event

    # ==================== READS ====================

    async def get(self, event_id: str) -> Document:
        event = await self.store.get(Collections.EVENTS, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        event.setdefault("approvalStatus", ApprovalStatus.PENDING.value)
        return event

    async def get_owned(self, event_id: str, hive_id: str) -> Document:
        """The event, provided the hive with id ``hive_id`` created it"""
        event = await self.get(event_id)
        if not hive_id or event.get("hiveId") != hive_id:
            raise AuthorizationError("This event belongs to another hive")
        return event

    async def list_all(self) -> List[Document]:
        return await self.store.query(Collections.EVENTS, order_by="createdAt", descending=True)

    async def list_by_hive(self, hive_id: str) -> List[Document]:
        return await self.store.query(
            Collections.EVENTS, filters={"hiveId": hive_id}, order_by="createdAt", descending=True
        )

    async def list_by_status(self, status: str) -> List[Document]:
        status = parse_enum(EventStatus, status, "status")
        return await self.store.query(
            Collections.EVENTS, filters={"status": status.value}, order_by="createdAt", descending=True
        )

    async def list_by_approval(self, approval_status: str) -> List[Document]:
        decision = parse_enum(ApprovalStatus, approval_status, "approvalStatus")
        events = await self.list_all()
        return [e for e in events if (e.get("approvalStatus") or ApprovalStatus.PENDING.value) == decision.value]

    async def upcoming(self, today: Optional[date] = None) -> List[Document]:
        """Events starting today or later, earliest first"""
        today = today or _today()
        events = await self.store.query(Collections.EVENTS)
        return sort_documents([e for e in events if statistics.starts_on_or_after(e, today)], "startDate")

    async def for_member(self, hive_id: str) -> List[Document]:
        """The member's hive events plus admin-organized events, newest first"""
        events = await self.list_all()
        return [e for e in events if (hive_id and e.get("hiveId") == hive_id) or is_admin_event(e)]

    async def upcoming_for_member(self, hive_id: str, today: Optional[date] = None) -> List[Document]:
        today = today or _today()
        events = await self.for_member(hive_id)
        return sort_documents([e for e in events if statistics.is_upcoming(e, today)], "startDate")

    async def statistics(self, hive_id: Optional[str] = None, today: Optional[date] = None) -> Dict[str, int]:
        filters = {"hiveId": hive_id} if hive_id else None
        events = await self.store.query(Collections.EVENTS, filters=filters)
        return statistics.event_stats(events, today=today)
