"""Host runtime contract consumed by the actions.

The conversational host supplies settings lookup, a memory store scoped by
room, and a result callback. LocalRuntime is a self-contained implementation
for the CLI and tests.
"""

import inspect
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from raiinmaker_verification.data_management.memory_store import InMemoryMemoryStore, MemoryStore

CallbackResult = Union[None, Awaitable[None]]
HandlerCallback = Callable[[dict[str, Any]], CallbackResult]


@dataclass
class ActionMessage:
    """An incoming chat message routed to an action."""

    text: str
    room_id: str
    user_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class AgentRuntime(Protocol):
    agent_id: str
    memory: MemoryStore

    def get_setting(self, key: str) -> Any: ...


class LocalRuntime:
    """
    Minimal AgentRuntime backed by a dict of settings and an in-memory store.

    Attributes:
        agent_id: Identifier of the agent owning written memories
        memory: MemoryStore for audit entries
    """

    def __init__(
        self,
        settings: Optional[dict[str, Any]] = None,
        memory: Optional[MemoryStore] = None,
        agent_id: Optional[str] = None,
    ):
        self._settings = dict(settings or {})
        self.memory = memory or InMemoryMemoryStore()
        self.agent_id = agent_id or str(uuid.uuid4())

    def get_setting(self, key: str) -> Any:
        return self._settings.get(key)


async def deliver(callback: Optional[HandlerCallback], payload: dict[str, Any]) -> None:
    """Invoke a sync or async callback, if any."""
    if callback is None:
        return
    result = callback(payload)
    if inspect.isawaitable(result):
        await result
