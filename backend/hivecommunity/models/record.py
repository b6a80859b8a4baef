from sqlalchemy import Column, String, DateTime, JSON, Index
from datetime import datetime, timezone

from hivecommunity.core.database import Base
from hivecommunity.core.types import GUID, generate_uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredRecord(Base):
    """
    One document in a named collection.

    Every collection (``hives``, ``members_approved``, ``events`` ...) shares
    this table; ``collection`` partitions it and ``data`` holds the document
    body as free-form JSON.
    """
    __tablename__ = "stored_records"

    __table_args__ = (
        Index('ix_stored_records_collection_created', 'collection', 'created_at'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    collection = Column(String(64), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def to_document(self) -> dict:
        """Document body with its id, the shape callers work with"""
        return {"id": self.id, **(self.data or {})}

    def __repr__(self):
        return f"<StoredRecord {self.collection}/{self.id}>"
