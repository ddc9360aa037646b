"""
Storage module.

Reads engagement counters and persists weekly snapshots via Supabase or memory.
"""

from src.storage.base import ContentStore, ContentQuery, DatabaseError, SaveResult
from src.storage.supabase import SupabaseStore, MemoryStore

__all__ = [
    "ContentStore",
    "ContentQuery",
    "DatabaseError",
    "SaveResult",
    "SupabaseStore",
    "MemoryStore",
]
