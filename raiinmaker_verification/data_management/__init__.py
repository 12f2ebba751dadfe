"""Audit memory storage."""

from raiinmaker_verification.data_management.memory_store import (
    CONTENT_AUTO_APPROVED,
    CONTENT_VERIFICATION,
    InMemoryMemoryStore,
    MemoryEntry,
    MemoryStore,
)

__all__ = [
    "CONTENT_AUTO_APPROVED",
    "CONTENT_VERIFICATION",
    "InMemoryMemoryStore",
    "MemoryEntry",
    "MemoryStore",
]
