"""Append-only, room-scoped audit memory for verification events.

The host runtime normally owns memory storage; MemoryStore is the contract
the actions rely on, and InMemoryMemoryStore is the local implementation
used by the CLI and tests.

Data structure:
{
    room_id: [MemoryEntry, ...],   # insertion order, oldest first
    ...
}

Usage:
    from raiinmaker_verification.data_management.memory_store import InMemoryMemoryStore

    store = InMemoryMemoryStore()
    await store.create_memory(entry)
    recent = await store.get_memories(room_id, count=10)
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from raiinmaker_verification.config.logging import get_event_logger

# metadata.taskType tags written by the verification flow
CONTENT_VERIFICATION = "contentVerification"
CONTENT_AUTO_APPROVED = "contentAutoApproved"


def now_ms() -> int:
    return int(time.time() * 1000)


class MemoryEntry(BaseModel):
    """One immutable memory record."""

    id: str
    room_id: str
    user_id: Optional[str] = None
    agent_id: Optional[str] = None
    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: int = Field(default_factory=now_ms)

    model_config = {"frozen": True}

    @property
    def task_id(self) -> Optional[str]:
        value = self.metadata.get("taskId")
        return value if isinstance(value, str) and value else None

    @property
    def task_type(self) -> Optional[str]:
        return self.metadata.get("taskType")


@runtime_checkable
class MemoryStore(Protocol):
    async def create_memory(self, entry: MemoryEntry) -> None: ...

    async def get_memories(self, room_id: str, count: int = 10) -> list[MemoryEntry]: ...


class InMemoryMemoryStore:
    """In-process MemoryStore with optional JSON persistence."""

    def __init__(self, persistence_path: Optional[str] = None) -> None:
        """Initialize InMemoryMemoryStore.

        Args:
            persistence_path: Optional path to JSON file for persistence.
                            If None, storage is memory-only.
        """
        self._rooms: dict[str, list[MemoryEntry]] = {}
        self._ids: set[str] = set()
        self._lock = asyncio.Lock()
        self._persistence_path = Path(persistence_path) if persistence_path else None
        self._logger = get_event_logger(__name__, component="MemoryStore")

        if self._persistence_path and self._persistence_path.exists():
            self._load_from_file()

    async def create_memory(self, entry: MemoryEntry) -> None:
        """Append a memory entry.

        Raises:
            ValueError: If an entry with the same id already exists.
        """
        async with self._lock:
            if entry.id in self._ids:
                raise ValueError(f"Memory {entry.id} already exists")

            self._rooms.setdefault(entry.room_id, []).append(entry)
            self._ids.add(entry.id)

            self._logger.debug(
                "memory_created",
                memory_id=entry.id,
                room_id=entry.room_id,
                task_id=entry.task_id,
                task_type=entry.task_type,
            )

            if self._persistence_path:
                self._save_to_file()

    async def get_memories(self, room_id: str, count: int = 10) -> list[MemoryEntry]:
        """Most recent entries for a room, newest first."""
        async with self._lock:
            entries = self._rooms.get(room_id, [])
            return list(reversed(entries[-count:])) if count > 0 else []

    async def find_by_task_id(self, task_id: str) -> list[MemoryEntry]:
        async with self._lock:
            return [
                entry
                for entries in self._rooms.values()
                for entry in entries
                if entry.task_id == task_id
            ]

    async def get_stats(self) -> dict[str, Any]:
        async with self._lock:
            type_counts: dict[str, int] = {}
            for entries in self._rooms.values():
                for entry in entries:
                    key = entry.task_type or "untagged"
                    type_counts[key] = type_counts.get(key, 0) + 1
            return {
                "rooms": len(self._rooms),
                "total": len(self._ids),
                "type_counts": type_counts,
            }

    def _save_to_file(self) -> None:
        """Save to JSON file (synchronous)."""
        if not self._persistence_path:
            return
        try:
            self._persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = {
                room_id: [entry.model_dump(mode="json") for entry in entries]
                for room_id, entries in self._rooms.items()
            }
            with open(self._persistence_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
        except OSError as e:
            self._logger.error("persistence_failed", error=str(e))

    def _load_from_file(self) -> None:
        try:
            with open(self._persistence_path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self._logger.error("load_failed", error=str(e))
            return

        for room_id, entries in data.items():
            for raw in entries:
                entry = MemoryEntry.model_validate(raw)
                self._rooms.setdefault(room_id, []).append(entry)
                self._ids.add(entry.id)

        self._logger.info("memories_loaded", total=len(self._ids))
