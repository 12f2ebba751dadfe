"""Reduce a task-with-votes snapshot into a stable verification status.

reduce_task_status() is a pure function of the latest snapshot and never
raises: on any internal fault it returns a degraded response with
status "error" so callers can always render something.
"""

from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel

from raiinmaker_verification.clients.schemas import Answer, TaskStatus, TaskWithVotes
from raiinmaker_verification.config.logging import get_logger
from raiinmaker_verification.utils.identifiers import short_id

logger = get_logger("verification.status")

PENDING_GLYPH = "⏳"
APPROVED_GLYPH = "✅"
REJECTED_GLYPH = "❌"
UNRESOLVED_GLYPH = "❔"

ERROR_STATUS = "error"


class VerificationStatusResponse(BaseModel):
    """Derived view of a task. Recomputed on every status query."""

    task_id: str
    status: str
    answer: Optional[bool] = None
    question: str = ""
    subject: str = ""
    votes_received: int = 0
    votes_required: int = 0
    votes_yes: int = 0
    votes_no: int = 0
    formatted_text: str = ""

    @property
    def verdict(self) -> Answer:
        if self.answer is True:
            return Answer.APPROVED
        if self.answer is False:
            return Answer.REJECTED
        return Answer.UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value and self.answer is not None

    def to_payload(self) -> dict[str, Any]:
        """camelCase dict for host callbacks."""
        return {
            "taskId": self.task_id,
            "status": self.status,
            "answer": self.answer,
            "question": self.question,
            "subject": self.subject,
            "votesReceived": self.votes_received,
            "votesRequired": self.votes_required,
            "votesYes": self.votes_yes,
            "votesNo": self.votes_no,
            "formattedText": self.formatted_text,
        }


def _status_sentence(status: str, verdict: Answer, votes_received: int, votes_required: int) -> str:
    if status == TaskStatus.COMPLETED.value:
        if verdict is Answer.UNRESOLVED:
            return "The verification is complete, but the answer could not be interpreted."
        return f"The verification is complete. The content was {verdict.value}."
    if status == TaskStatus.PENDING.value:
        return (
            f"The verification is still in progress. "
            f"{votes_received} of {votes_required} required votes collected."
        )
    return f"Status: {status}"


def _glyph(status: str, verdict: Answer) -> str:
    if status != TaskStatus.COMPLETED.value:
        return PENDING_GLYPH
    return {
        Answer.APPROVED: APPROVED_GLYPH,
        Answer.REJECTED: REJECTED_GLYPH,
    }.get(verdict, UNRESOLVED_GLYPH)


def reduce_task_status(task: Union[TaskWithVotes, Mapping[str, Any]]) -> VerificationStatusResponse:
    """
    Reduce a task snapshot to a VerificationStatusResponse.

    Args:
        task: TaskWithVotes, or a raw camelCase payload

    Returns:
        VerificationStatusResponse. The answer is only ever non-null for
        completed tasks whose answer string is recognised.
    """
    raw_id = ""
    try:
        if not isinstance(task, TaskWithVotes):
            raw_id = str(task.get("id") or "") if isinstance(task, Mapping) else ""
            # null fields fall back to model defaults (votes -> [])
            task = TaskWithVotes.model_validate({k: v for k, v in task.items() if v is not None})

        task_id = task.id or ""
        status = task.status or "unknown"
        votes = task.votes or []
        votes_required = task.consensus_votes or 0

        verdict = task.verdict if status == TaskStatus.COMPLETED.value else Answer.UNRESOLVED
        votes_yes = sum(1 for vote in votes if vote.verdict is Answer.APPROVED)
        votes_no = sum(1 for vote in votes if vote.verdict is Answer.REJECTED)

        sentence = _status_sentence(status, verdict, len(votes), votes_required)
        formatted = (
            f"{_glyph(status, verdict)} Content Verification "
            f"(ID: {short_id(task_id)}) - {sentence}"
        )

        return VerificationStatusResponse(
            task_id=task_id,
            status=status,
            answer=verdict.as_bool(),
            question=task.question or "",
            subject=task.subject or "",
            votes_received=len(votes),
            votes_required=votes_required,
            votes_yes=votes_yes,
            votes_no=votes_no,
            formatted_text=formatted,
        )
    except Exception as e:
        logger.error(f"Error formatting verification response: {e}")
        fallback_id = getattr(task, "id", None) or raw_id or "unknown"
        return VerificationStatusResponse(
            task_id=str(fallback_id),
            status=ERROR_STATUS,
            answer=None,
            formatted_text="Error formatting verification response",
        )


def format_task_details(task: TaskWithVotes) -> str:
    """
    Multi-line rendering of a task: header, question, content, status and
    an ASCII bar per vote side scaled to ten cells.
    """
    status = task.status or "unknown"
    votes = task.votes or []
    votes_required = task.consensus_votes or 0
    verdict = task.verdict if status == TaskStatus.COMPLETED.value else Answer.UNRESOLVED

    header = f"{_glyph(status, verdict)} {task.name or 'Verification Task'} (ID: {short_id(task.id or '')})"
    lines = [
        header,
        "-" * len(header),
        f'Question: "{task.question or ""}"',
        f'Content: "{task.subject or ""}"',
        _status_sentence(status, verdict, len(votes), votes_required),
    ]

    if votes:
        yes = sum(1 for vote in votes if vote.verdict is Answer.APPROVED)
        no = sum(1 for vote in votes if vote.verdict is Answer.REJECTED)
        total = max(votes_required, len(votes))
        lines += [
            "",
            "Votes:",
            f"✓ Approve: {yes} {'█' * int(yes / total * 10)}".rstrip(),
            f"✗ Reject: {no} {'█' * int(no / total * 10)}".rstrip(),
        ]

    return "\n".join(lines)
