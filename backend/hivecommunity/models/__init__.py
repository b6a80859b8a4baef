# Re-export all models for convenient imports
from hivecommunity.models.record import StoredRecord

__all__ = [
    "StoredRecord",
]
