"""
Hive directory: read models over the hive collections.

Approved hives are what members choose from when applying. ``memberCount``
is computed on every read from the approved-members collection.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from hivecommunity.core.config import Settings, settings as default_settings
from hivecommunity.core.exceptions import NotFoundError, ValidationError
from hivecommunity.services import statistics
from hivecommunity.services.document_store import (
    Collections,
    Document,
    DocumentStore,
    sort_documents,
)

logger = logging.getLogger(__name__)

STATUS_COLLECTIONS: Dict[str, str] = {
    "pending": Collections.HIVES,
    "approved": Collections.HIVES_APPROVED,
    "rejected": Collections.HIVES_REJECTED,
}

SEARCH_FIELDS = ("hiveName", "campusName", "campusLocation", "name")


class HiveService:
    def __init__(self, store: DocumentStore, config: Settings = default_settings):
        self.store = store
        self.config = config

    async def _member_counts(self) -> Counter:
        approved = await self.store.query(Collections.MEMBERS_APPROVED)
        return Counter(m.get("selectedHiveId") for m in approved if m.get("isActive", True))

    async def approved_for_selection(self) -> List[Document]:
        """Approved hives newest first, shaped for the member application form"""
        hives = await self.store.query(Collections.HIVES_APPROVED, order_by="approvedAt", descending=True)
        counts = await self._member_counts()
        return [
            {
                "id": hive["id"],
                "hiveName": hive.get("hiveName"),
                "campusName": hive.get("campusName"),
                "campusLocation": hive.get("campusLocation"),
                "creatorName": hive.get("name"),
                "memberCount": counts.get(hive["id"], 0),
                "expectedAudience": hive.get("expectedAudience"),
            }
            for hive in hives
        ]

    async def get_by_status(self, status: str) -> List[Document]:
        collection = STATUS_COLLECTIONS.get(status)
        if collection is None:
            raise ValidationError(
                f"Unknown hive status '{status}'",
                errors=[f"status must be one of {', '.join(STATUS_COLLECTIONS)}"],
            )
        return await self.store.query(collection, order_by="createdAt", descending=True)

    async def get_all(self) -> List[Document]:
        """Hives in every state, newest application first"""
        hives: List[Document] = []
        for collection in STATUS_COLLECTIONS.values():
            hives.extend(await self.store.query(collection))
        return sort_documents(hives, "createdAt", descending=True)

    async def get(self, hive_id: str) -> Optional[Document]:
        for collection in STATUS_COLLECTIONS.values():
            hive = await self.store.get(collection, hive_id)
            if hive is not None:
                return hive
        return None

    async def search(self, term: str) -> List[Document]:
        """Case-insensitive substring match on name, campus or leader"""
        needle = (term or "").strip().lower()
        hives = await self.get_all()
        if not needle:
            return hives
        return [
            hive for hive in hives
            if any(needle in str(hive.get(field) or "").lower() for field in SEARCH_FIELDS)
        ]

    async def member_stats(self, hive_id: str) -> Dict[str, int]:
        pending = await self.store.query(
            Collections.MEMBERS, filters={"selectedHiveId": hive_id, "status": "pending"}
        )
        approved = await self.store.query(Collections.MEMBERS_APPROVED, filters={"selectedHiveId": hive_id})
        rejected = await self.store.query(Collections.MEMBERS_REJECTED, filters={"selectedHiveId": hive_id})
        return statistics.member_stats(
            pending, approved, rejected, recent_days=self.config.RECENT_APPLICATION_DAYS
        )

    async def dashboard(self, hive_id: str, original_hive_id: Optional[str] = None) -> Dict[str, Any]:
        """Approved hive record (falling back to its original application) plus counts"""
        hive = await self.store.get(Collections.HIVES_APPROVED, hive_id) if hive_id else None
        if hive is None and original_hive_id:
            hive = await self.store.get(Collections.HIVES, original_hive_id)
        if hive is None:
            raise NotFoundError("Hive", hive_id or original_hive_id or "")

        approved = await self.store.query(Collections.MEMBERS_APPROVED, filters={"selectedHiveId": hive["id"]})
        pending = await self.store.query(
            Collections.MEMBERS, filters={"selectedHiveId": hive["id"], "status": "pending"}
        )
        events = await self.store.query(Collections.EVENTS, filters={"hiveId": hive["id"]})

        hive["memberCount"] = sum(1 for m in approved if m.get("isActive", True))
        return {
            "hive": hive,
            "stats": statistics.hive_dashboard_stats(approved, pending, events),
        }
