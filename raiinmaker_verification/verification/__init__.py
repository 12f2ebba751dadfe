"""Verification status reduction and response rendering."""

from raiinmaker_verification.clients.schemas import Answer
from raiinmaker_verification.verification.status import (
    VerificationStatusResponse,
    format_task_details,
    reduce_task_status,
)

__all__ = [
    "Answer",
    "VerificationStatusResponse",
    "format_task_details",
    "reduce_task_status",
]
