from teamshare.storage.base import RecordStore
from teamshare.storage.factory import create_record_store, seed_default_assignments
from teamshare.storage.memory import MemoryRecordStore
from teamshare.storage.sql import SqlRecordStore

__all__ = [
    "MemoryRecordStore",
    "RecordStore",
    "SqlRecordStore",
    "create_record_store",
    "seed_default_assignments",
]
