"""Record store backends."""

from .base import TICKETS_COLLECTION, USERS_COLLECTION, RecordStore
from .memory import InMemoryRecordStore

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "TICKETS_COLLECTION",
    "USERS_COLLECTION",
]
