"""Raiinmaker API client, payload schemas and errors."""

from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.clients.raiinmaker_client import RaiinmakerClient
from raiinmaker_verification.clients.schemas import (
    Answer,
    CreateTaskOptions,
    Task,
    TaskQuery,
    TaskStatus,
    TaskType,
    TaskWithVotes,
    Vote,
)

__all__ = [
    "Answer",
    "CreateTaskOptions",
    "RaiinmakerApiError",
    "RaiinmakerClient",
    "Task",
    "TaskQuery",
    "TaskStatus",
    "TaskType",
    "TaskWithVotes",
    "Vote",
]
