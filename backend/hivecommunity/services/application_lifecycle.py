"""
Application Lifecycle Engine

Governs hive, member and volunteer applications through
``pending -> approved | rejected``.

Two persistence strategies are in play, chosen per kind in ``PLANS``:

- hive and member applications MOVE: the decision copies the record into the
  approved/rejected collection and deletes the pending one, so a record is
  only ever in one of the three collections. Approval also issues a
  credential.
- volunteer applications stay in ``volunteer_applications`` and only their
  ``status`` field changes.

Either way every decision also appends an entry to ``application_audit`` in
the same transaction, so the full history is queryable regardless of
strategy. A decision on a record that is no longer pending raises
``NotFoundError``; of two racing decisions exactly one wins.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from hivecommunity.core.config import Settings, settings as default_settings
from hivecommunity.core.exceptions import NotFoundError, ServiceError, ValidationError
from hivecommunity.core.logging_config import logger as lifecycle_logger
from hivecommunity.core.security import get_password_hash
from hivecommunity.core.types import generate_uuid
from hivecommunity.services import credential_generator
from hivecommunity.services.document_store import (
    Collections,
    Document,
    DocumentStore,
    StoreTransaction,
    utc_timestamp,
)
from hivecommunity.services.validators import (
    ValidationResult,
    validate_hive_data,
    validate_member_data,
    validate_volunteer_application,
)

logger = logging.getLogger(__name__)


class ApplicationKind(str, Enum):
    HIVE = "hive"
    MEMBER = "member"
    VOLUNTEER = "volunteer"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LifecyclePlan:
    """Where each kind of application lives and how it is validated"""
    kind: ApplicationKind
    label: str
    pending_collection: str
    validate: Callable[[Mapping[str, Any]], ValidationResult]
    moves: bool = True
    approved_collection: Optional[str] = None
    rejected_collection: Optional[str] = None
    credential_collection: Optional[str] = None
    scope_field: Optional[str] = None


PLANS: Dict[ApplicationKind, LifecyclePlan] = {
    ApplicationKind.HIVE: LifecyclePlan(
        kind=ApplicationKind.HIVE,
        label="Hive application",
        pending_collection=Collections.HIVES,
        approved_collection=Collections.HIVES_APPROVED,
        rejected_collection=Collections.HIVES_REJECTED,
        credential_collection=Collections.HIVE_CREDENTIALS,
        validate=validate_hive_data,
    ),
    ApplicationKind.MEMBER: LifecyclePlan(
        kind=ApplicationKind.MEMBER,
        label="Member application",
        pending_collection=Collections.MEMBERS,
        approved_collection=Collections.MEMBERS_APPROVED,
        rejected_collection=Collections.MEMBERS_REJECTED,
        credential_collection=Collections.MEMBER_CREDENTIALS,
        validate=validate_member_data,
        scope_field="selectedHiveId",
    ),
    ApplicationKind.VOLUNTEER: LifecyclePlan(
        kind=ApplicationKind.VOLUNTEER,
        label="Volunteer application",
        pending_collection=Collections.VOLUNTEER_APPLICATIONS,
        validate=validate_volunteer_application,
        moves=False,
        scope_field="volunteerId",
    ),
}


@dataclass(frozen=True)
class IssuedCredentials:
    """Login details handed to the approver exactly once"""
    email: str
    password: str
    generated_at: str


@dataclass(frozen=True)
class ApprovalResult:
    approved_id: str
    credentials: Optional[IssuedCredentials] = None


@dataclass
class PendingPage:
    applications: List[Document] = field(default_factory=list)
    has_more: bool = False


def hive_name_key(name: Any) -> str:
    """Comparison key for hive names: case and inner whitespace ignored"""
    return " ".join(str(name or "").split()).casefold()


async def ensure_hive_name_free(
    tx: StoreTransaction,
    hive_name: Any,
    collections: Sequence[str],
    exclude_id: Optional[str] = None,
) -> None:
    """Raise ValidationError when another hive in ``collections`` has this name"""
    key = hive_name_key(hive_name)
    for collection in collections:
        for hive in await tx.query(collection):
            if hive["id"] != exclude_id and hive_name_key(hive.get("hiveName")) == key:
                raise ValidationError(
                    f"A hive named '{hive_name}' already exists",
                    errors=["Hive name is already taken"],
                )


class ApplicationLifecycle:
    """Submit, approve and reject applications of every kind"""

    def __init__(self, store: DocumentStore, config: Settings = default_settings):
        self.store = store
        self.config = config

    # ==================== SUBMISSION ====================

    async def submit(self, kind: ApplicationKind, payload: Mapping[str, Any]) -> str:
        """Validate and store a new pending application; returns its id.

        Hive names must be unused among pending and approved hives. A member
        application must name an approved hive, whose stored name replaces
        whatever the form carried.
        """
        plan = PLANS[ApplicationKind(kind)]
        record = self.prepare_submission(plan.kind, payload)
        async with self.store.transaction() as tx:
            if plan.kind == ApplicationKind.HIVE:
                await ensure_hive_name_free(
                    tx, record.get("hiveName"), (Collections.HIVES, Collections.HIVES_APPROVED)
                )
            elif plan.kind == ApplicationKind.MEMBER:
                await self._resolve_selected_hive(tx, record)
            application_id = await tx.add(plan.pending_collection, record)
        logger.info(f"{plan.label} submitted: {application_id}")
        return application_id

    def prepare_submission(self, kind: ApplicationKind, payload: Mapping[str, Any]) -> Document:
        """Validated, stamped pending record ready to be written"""
        plan = PLANS[ApplicationKind(kind)]
        plan.validate(payload).raise_for_errors(plan.label)

        record = self._prepare(plan.kind, payload)
        now = utc_timestamp()
        record.update({
            "status": ApplicationStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
            "applicationDate": now,
        })
        if plan.kind == ApplicationKind.VOLUNTEER:
            record["appliedAt"] = now
        else:
            record["isActive"] = False
        return record

    @staticmethod
    async def _resolve_selected_hive(tx: StoreTransaction, record: Document) -> None:
        hive_id = record.get("selectedHiveId")
        hive = await tx.get(Collections.HIVES_APPROVED, hive_id) if hive_id else None
        if hive is None:
            raise ValidationError(
                "Selected hive is not an approved hive",
                errors=["Please select a hive from the approved list"],
            )
        record["selectedHiveName"] = hive.get("hiveName")

    @staticmethod
    def _prepare(kind: ApplicationKind, payload: Mapping[str, Any]) -> Document:
        record = {k: v for k, v in payload.items() if k != "id"}
        if kind == ApplicationKind.MEMBER:
            selected = record.pop("selectedHive", None) or {}
            record["selectedHiveId"] = selected.get("id")
            record["selectedHiveName"] = selected.get("hiveName")
        elif kind == ApplicationKind.HIVE:
            # Membership size is derived from approved members at read time
            record.pop("memberCount", None)
        return record

    # ==================== DECISIONS ====================

    async def approve(
        self,
        kind: ApplicationKind,
        application_id: str,
        actor_id: str,
        note: str = "",
    ) -> ApprovalResult:
        """Approve a pending application.

        Hive/member approvals move the record, issue a credential and return
        it; volunteer approvals flip ``status`` in place.
        """
        plan = PLANS[ApplicationKind(kind)]
        if not plan.moves:
            await self._decide_in_place(plan, application_id, ApplicationStatus.APPROVED, actor_id, note)
            return ApprovalResult(approved_id=application_id)
        return await self._decide_by_move(plan, application_id, ApplicationStatus.APPROVED, actor_id, note)

    async def reject(
        self,
        kind: ApplicationKind,
        application_id: str,
        actor_id: str,
        note: str = "",
    ) -> str:
        """Reject a pending application; returns the id of the rejected record"""
        plan = PLANS[ApplicationKind(kind)]
        if not plan.moves:
            await self._decide_in_place(plan, application_id, ApplicationStatus.REJECTED, actor_id, note)
            return application_id
        result = await self._decide_by_move(plan, application_id, ApplicationStatus.REJECTED, actor_id, note)
        return result.approved_id

    async def _decide_by_move(
        self,
        plan: LifecyclePlan,
        application_id: str,
        decision: ApplicationStatus,
        actor_id: str,
        note: str,
    ) -> ApprovalResult:
        approved = decision == ApplicationStatus.APPROVED
        target_collection = plan.approved_collection if approved else plan.rejected_collection
        target_id = generate_uuid()
        issued: Optional[IssuedCredentials] = None

        async with self.store.transaction() as tx:
            record = await tx.get(plan.pending_collection, application_id, for_update=True)
            if record is None:
                raise NotFoundError(plan.label, application_id)

            now = utc_timestamp()
            body = {k: v for k, v in record.items() if k != "id"}
            body.update({
                "status": decision.value,
                "updatedAt": now,
                "leaderNote": note,
                "leaderActionDate": now,
                "originalApplicationId": application_id,
            })

            if approved:
                if plan.kind == ApplicationKind.HIVE:
                    await ensure_hive_name_free(tx, record.get("hiveName"), (Collections.HIVES_APPROVED,))
                generated = await self._issue_credential(tx, plan, record, target_id)
                issued = IssuedCredentials(
                    email=generated.identifier,
                    password=generated.secret,
                    generated_at=generated.generated_at,
                )
                body.update({
                    "isActive": True,
                    "approvedAt": now,
                    "approvedBy": actor_id,
                    "credentials": {"email": generated.identifier, "generatedAt": generated.generated_at},
                })
            else:
                body.update({"isActive": False, "rejectedAt": now, "rejectedBy": actor_id})

            await tx.add(target_collection, body, record_id=target_id)
            await tx.delete_existing(plan.pending_collection, application_id)
            await self._audit(tx, plan, application_id, decision, actor_id, note, target_id)

        lifecycle_logger.log_lifecycle_event(
            plan.kind.value, application_id, ApplicationStatus.PENDING.value, decision.value,
            actor_id=actor_id, result_id=target_id,
        )
        return ApprovalResult(approved_id=target_id, credentials=issued)

    async def _decide_in_place(
        self,
        plan: LifecyclePlan,
        application_id: str,
        decision: ApplicationStatus,
        actor_id: str,
        note: str,
    ) -> None:
        async with self.store.transaction() as tx:
            record = await tx.get(plan.pending_collection, application_id, for_update=True)
            if record is None:
                raise NotFoundError(plan.label, application_id)
            if record.get("status", ApplicationStatus.PENDING.value) != ApplicationStatus.PENDING.value:
                raise NotFoundError(
                    plan.label, application_id,
                    f"{plan.label} '{application_id}' has already been reviewed"
                )

            now = utc_timestamp()
            await tx.update(plan.pending_collection, application_id, {
                "status": decision.value,
                "adminNote": note,
                "reviewedAt": now,
                "reviewedBy": actor_id,
                "updatedAt": now,
            })
            await self._audit(tx, plan, application_id, decision, actor_id, note, application_id)

        lifecycle_logger.log_lifecycle_event(
            plan.kind.value, application_id, ApplicationStatus.PENDING.value, decision.value,
            actor_id=actor_id,
        )

    async def _issue_credential(
        self,
        tx: StoreTransaction,
        plan: LifecyclePlan,
        record: Document,
        approved_id: str,
    ) -> credential_generator.GeneratedCredential:
        """Generate, de-duplicate and persist a credential inside ``tx``"""
        if plan.kind == ApplicationKind.HIVE:
            owner, group = record.get("name"), record.get("hiveName")
            back_refs = {
                "hiveId": approved_id,
                "originalHiveId": record["id"],
                "hiveName": record.get("hiveName"),
                "creatorName": record.get("name"),
            }
        else:
            owner, group = record.get("name"), record.get("selectedHiveName")
            back_refs = {
                "memberId": approved_id,
                "originalMemberId": record["id"],
                "memberName": record.get("name"),
                "hiveId": record.get("selectedHiveId"),
                "hiveName": record.get("selectedHiveName"),
            }

        domain = self.config.credential_domain(plan.kind.value)
        for attempt in range(max(1, self.config.CREDENTIAL_MAX_ATTEMPTS)):
            suffix = None if attempt == 0 else credential_generator.random_suffix()
            generated = credential_generator.generate(owner, group, domain, suffix=suffix)
            taken = await tx.query(plan.credential_collection, filters={"email": generated.identifier})
            if not taken:
                break
            logger.warning(f"Login identifier collision on {generated.identifier}, redrawing suffix")
        else:
            raise ServiceError("Could not allocate a unique login identifier", operation="issue_credential")

        await tx.add(plan.credential_collection, {
            **back_refs,
            "email": generated.identifier,
            "passwordHash": get_password_hash(generated.secret),
            "isActive": True,
            "generatedAt": generated.generated_at,
        })
        return generated

    @staticmethod
    async def _audit(
        tx: StoreTransaction,
        plan: LifecyclePlan,
        application_id: str,
        decision: ApplicationStatus,
        actor_id: str,
        note: str,
        result_id: str,
    ) -> None:
        await tx.add(Collections.APPLICATION_AUDIT, {
            "kind": plan.kind.value,
            "applicationId": application_id,
            "fromStatus": ApplicationStatus.PENDING.value,
            "toStatus": decision.value,
            "actorId": actor_id,
            "note": note,
            "resultId": result_id,
            "createdAt": utc_timestamp(),
        })

    # ==================== READS ====================

    async def get_application(self, kind: ApplicationKind, application_id: str) -> Optional[Document]:
        plan = PLANS[ApplicationKind(kind)]
        return await self.store.get(plan.pending_collection, application_id)

    async def list_pending(
        self,
        kind: ApplicationKind,
        scope_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> PendingPage:
        """Pending applications newest first, optionally scoped to a hive/opportunity"""
        plan = PLANS[ApplicationKind(kind)]
        filters: Dict[str, Any] = {"status": ApplicationStatus.PENDING.value}
        if scope_id is not None and plan.scope_field:
            filters[plan.scope_field] = scope_id

        fetch = None if limit is None else limit + 1
        documents = await self.store.query(
            plan.pending_collection, filters=filters,
            order_by="createdAt", descending=True, limit=fetch, offset=offset,
        )
        has_more = limit is not None and len(documents) > limit
        return PendingPage(applications=documents[:limit] if limit is not None else documents, has_more=has_more)

    async def list_decided(
        self,
        kind: ApplicationKind,
        status: ApplicationStatus,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Document]:
        """Approved or rejected applications of ``kind``"""
        plan = PLANS[ApplicationKind(kind)]
        status = ApplicationStatus(status)
        if plan.moves:
            collection = plan.approved_collection if status == ApplicationStatus.APPROVED else plan.rejected_collection
            return await self.store.query(collection, filters=filters, order_by="updatedAt", descending=True)
        return await self.store.query(
            plan.pending_collection,
            filters={**(filters or {}), "status": status.value},
            order_by="updatedAt",
            descending=True,
        )

    async def list_approved(self, kind: ApplicationKind, filters: Optional[Dict[str, Any]] = None) -> List[Document]:
        return await self.list_decided(kind, ApplicationStatus.APPROVED, filters)

    async def list_rejected(self, kind: ApplicationKind, filters: Optional[Dict[str, Any]] = None) -> List[Document]:
        return await self.list_decided(kind, ApplicationStatus.REJECTED, filters)

    async def get_approved_members(self, hive_id: str) -> List[Document]:
        return await self.list_approved(ApplicationKind.MEMBER, {"selectedHiveId": hive_id})

    async def get_rejected_members(self, hive_id: str) -> List[Document]:
        return await self.list_rejected(ApplicationKind.MEMBER, {"selectedHiveId": hive_id})

    async def audit_trail(self, application_id: str) -> List[Document]:
        return await self.store.query(
            Collections.APPLICATION_AUDIT,
            filters={"applicationId": application_id},
            order_by="createdAt",
        )
