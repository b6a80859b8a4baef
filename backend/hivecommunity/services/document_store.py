"""
Document Store Gateway - named record collections over SQLAlchemy

Every collection the application uses lives in the single ``stored_records``
table. The store offers the small surface the services need:

    store = DocumentStore.from_engine(engine)

    member_id = await store.add(Collections.MEMBERS, {...})
    pending = await store.query(Collections.MEMBERS,
                                filters={"selectedHiveId": hive_id},
                                order_by="createdAt", descending=True)

    async with store.transaction() as tx:
        record = await tx.get(Collections.MEMBERS, member_id, for_update=True)
        await tx.add(Collections.MEMBERS_APPROVED, {...})
        await tx.delete_existing(Collections.MEMBERS, member_id)

Writes inside ``transaction()`` commit together or not at all. Filtering and
ordering are evaluated in Python over the collection, mirroring the simple
client-side predicates the application is built around.
"""

import inspect
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hivecommunity.core.database import build_session_factory
from hivecommunity.core.exceptions import NotFoundError, ServiceError
from hivecommunity.models.record import StoredRecord

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
SnapshotCallback = Callable[[List[Document]], Union[None, Awaitable[None]]]


class Collections:
    """Collection names shared by every service"""
    HIVES = "hives"
    HIVES_APPROVED = "hives_approved"
    HIVES_REJECTED = "hives_rejected"
    HIVE_CREDENTIALS = "hive_credentials"
    MEMBERS = "members"
    MEMBERS_APPROVED = "members_approved"
    MEMBERS_REJECTED = "members_rejected"
    MEMBER_CREDENTIALS = "member_credentials"
    EVENTS = "events"
    VOLUNTEERS = "volunteers"
    VOLUNTEER_APPLICATIONS = "volunteer_applications"
    VOLUNTEER_NOTIFICATIONS = "volunteer_notifications"
    APPLICATION_AUDIT = "application_audit"


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string (the stored timestamp format)"""
    return datetime.now(timezone.utc).isoformat()


def to_storable(value: Any) -> Any:
    """Convert a payload into plain JSON types"""
    if isinstance(value, dict):
        return {str(k): to_storable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_storable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def get_field(document: Document, path: str) -> Any:
    """Read a dotted path such as ``credentials.email``"""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def matches(document: Document, filters: Optional[Dict[str, Any]]) -> bool:
    """Equality match on every filter path"""
    if not filters:
        return True
    return all(get_field(document, path) == expected for path, expected in filters.items())


def sort_documents(documents: List[Document], order_by: Optional[str], descending: bool = False) -> List[Document]:
    """Order by a field; documents missing the field always go last"""
    if not order_by:
        return list(documents)
    present = [d for d in documents if get_field(d, order_by) is not None]
    missing = [d for d in documents if get_field(d, order_by) is None]
    present.sort(key=lambda d: get_field(d, order_by), reverse=descending)
    return present + missing


class StoreTransaction:
    """Operations bound to one open database transaction"""

    def __init__(self, session: AsyncSession):
        self._session = session
        self.touched: Set[str] = set()

    async def _load(self, collection: str, record_id: str, for_update: bool = False) -> Optional[StoredRecord]:
        stmt = select(StoredRecord).where(
            StoredRecord.id == record_id,
            StoredRecord.collection == collection,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, collection: str, record_id: str, for_update: bool = False) -> Optional[Document]:
        row = await self._load(collection, record_id, for_update=for_update)
        return row.to_document() if row else None

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]:
        result = await self._session.execute(
            select(StoredRecord)
            .where(StoredRecord.collection == collection)
            .order_by(StoredRecord.created_at)
        )
        documents = [row.to_document() for row in result.scalars().all()]
        documents = sort_documents([d for d in documents if matches(d, filters)], order_by, descending)
        if offset:
            documents = documents[offset:]
        if limit is not None:
            documents = documents[:limit]
        return documents

    async def add(self, collection: str, data: Document, record_id: Optional[str] = None) -> str:
        body = to_storable({k: v for k, v in data.items() if k != "id"})
        row = StoredRecord(collection=collection, data=body)
        if record_id:
            row.id = record_id
        self._session.add(row)
        await self._session.flush()
        self.touched.add(collection)
        return row.id

    async def update(self, collection: str, record_id: str, fields: Document) -> Document:
        row = await self._load(collection, record_id, for_update=True)
        if row is None:
            raise NotFoundError("Record", record_id, f"{collection}/{record_id} not found")
        changes = to_storable({k: v for k, v in fields.items() if k != "id"})
        row.data = {**(row.data or {}), **changes}
        await self._session.flush()
        self.touched.add(collection)
        return row.to_document()

    async def delete(self, collection: str, record_id: str) -> bool:
        result = await self._session.execute(
            delete(StoredRecord).where(
                StoredRecord.id == record_id,
                StoredRecord.collection == collection,
            )
        )
        removed = (result.rowcount or 0) > 0
        if removed:
            self.touched.add(collection)
        return removed

    async def delete_existing(self, collection: str, record_id: str) -> None:
        """Delete a record that must still exist; raises NotFoundError otherwise"""
        if not await self.delete(collection, record_id):
            raise NotFoundError("Record", record_id, f"{collection}/{record_id} no longer exists")


class Subscription:
    """Live query over one collection; every delivery is the full result set"""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        callback: SnapshotCallback,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.filters = filters
        self.order_by = order_by
        self.descending = descending
        self.active = True

    async def refresh(self) -> None:
        if not self.active:
            return
        snapshot = await self.store.query(
            self.collection, filters=self.filters, order_by=self.order_by, descending=self.descending
        )
        result = self.callback(snapshot)
        if inspect.isawaitable(result):
            await result

    def unsubscribe(self) -> None:
        self.active = False
        self.store._subscriptions.discard(self)


class DocumentStore:
    """Explicitly constructed handle over the record tables"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._subscriptions: Set[Subscription] = set()

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DocumentStore":
        return cls(build_session_factory(engine))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        """All writes made through the yielded handle commit or roll back together"""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    tx = StoreTransaction(session)
                    yield tx
        except SQLAlchemyError as e:
            logger.error(f"Document store operation failed: {e}", exc_info=True)
            raise ServiceError(operation="transaction") from e
        await self._notify(tx.touched)

    # ==================== SINGLE OPERATIONS ====================

    async def add(self, collection: str, data: Document) -> str:
        async with self.transaction() as tx:
            return await tx.add(collection, data)

    async def get(self, collection: str, record_id: str) -> Optional[Document]:
        async with self.transaction() as tx:
            return await tx.get(collection, record_id)

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]:
        async with self.transaction() as tx:
            return await tx.query(collection, filters, order_by, descending, limit, offset)

    async def count(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> int:
        return len(await self.query(collection, filters))

    async def update(self, collection: str, record_id: str, fields: Document) -> Document:
        async with self.transaction() as tx:
            return await tx.update(collection, record_id, fields)

    async def delete(self, collection: str, record_id: str) -> bool:
        async with self.transaction() as tx:
            return await tx.delete(collection, record_id)

    # ==================== LIVE QUERIES ====================

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        """Deliver the current result set now and after every committed change"""
        subscription = Subscription(self, collection, callback, filters, order_by, descending)
        self._subscriptions.add(subscription)
        await subscription.refresh()
        return subscription

    async def _notify(self, collections: Iterable[str]) -> None:
        touched = set(collections)
        if not touched:
            return
        for subscription in list(self._subscriptions):
            if subscription.collection not in touched:
                continue
            try:
                await subscription.refresh()
            except Exception as e:
                logger.warning(
                    f"Subscription callback on '{subscription.collection}' failed: {e}",
                    exc_info=True
                )

    def close(self) -> None:
        """Drop every live subscription"""
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
