"""User-facing renderings for action results."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from raiinmaker_verification.clients.schemas import DataVerificationResult, Task, TaskStatus, TaskType

PREVIEW_LENGTH = 100
AUDIT_PREVIEW_LENGTH = 50


def preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    return f"{content[:length]}{'...' if len(content) > length else ''}"


class ActionResponse(BaseModel):
    """Summary of a submission attempt, with hints for what to do next."""

    success: bool
    message: str
    task_id: Optional[str] = None
    status: Optional[str] = None
    next_steps: list[str] = Field(default_factory=list)


def format_verification_response(
    success: bool,
    task_id: Optional[str] = None,
    status: Optional[str] = None,
    details: Optional[str] = None,
) -> ActionResponse:
    base = (
        "Content verification request submitted successfully."
        if success
        else "Failed to submit content for verification."
    )
    next_steps = (
        [
            f"Check the status later using: CHECK_VERIFICATION_STATUS with task ID {task_id}",
            "Wait for human validators to review your content",
            "Validators will determine if the content is appropriate to post",
        ]
        if success
        else ["Try again with different content", "Ensure your API credentials are correct"]
    )
    return ActionResponse(
        success=success,
        message=f"{base} {details}" if details else base,
        task_id=task_id,
        status=status,
        next_steps=next_steps,
    )


def submitted_text(content: str, task_id: str) -> str:
    return (
        "I've submitted your content for verification through the Raiinmaker network.\n\n"
        f'📋 Content: "{preview(content)}"\n\n'
        f"🔍 Task ID: {task_id}\n\n"
        "The content will be reviewed by human validators in the Raiinmaker network. "
        "They'll determine if the content is appropriate for posting based on community guidelines.\n\n"
        "You can check the status of this verification later by asking me about this task using the Task ID.\n\n"
        "⏳ The verification process typically takes a few minutes to a few hours, "
        "depending on validator availability."
    )


def auto_approved_text(content: str) -> str:
    return (
        "I've analyzed your content using AI verification and it looks good to go!\n\n"
        f'📋 Content: "{preview(content)}"\n\n'
        "✅ All guidelines passed\n"
        "• Content is appropriate for posting\n"
        "• No policy violations found\n\n"
        "The content has been approved automatically. No human verification was needed."
    )


CONFIG_MISSING_TEXT = (
    "Raiinmaker API configuration is not properly set up.\n\n"
    "Please ensure the following environment variables are set:\n"
    "- RAIINMAKER_APP_ID: Your Raiinmaker application ID\n"
    "- RAIINMAKER_API_KEY: Your Raiinmaker API key"
)


def _format_updated_at(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def format_quest_list(
    tasks: list[Task],
    status: Optional[TaskStatus] = None,
    task_type: Optional[TaskType] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> str:
    """Header describing the active filters, then one bullet per task."""
    header = "Here are your Raiinmaker quests"
    if status:
        header += f" ({status.value})"
    if task_type:
        header += f" of type {task_type.value}"
    if start_date:
        header += f" from {start_date}"
    if end_date:
        header += f" to {end_date}"
    header += ":\n\n"

    bullets = []
    for task in tasks:
        lines = [
            f"• {task.name or 'Unnamed task'} ({task.status or 'unknown'})",
            f"  Type: {task.type or 'unknown'}",
            f"  Question: {task.question or ''}",
        ]
        if task.answer:
            lines.append(f"  Answer: {task.answer}")
        lines.append(f"  Last Updated: {_format_updated_at(task.updated_at)}")
        bullets.append("\n".join(lines))

    return header + "\n\n".join(bullets)


_APPROVED = {"approved", "valid", "success"}
_PENDING = {"pending", "processing"}
_REJECTED = {"rejected", "invalid", "failed"}


def format_data_verification(result: DataVerificationResult) -> tuple[str, bool]:
    """
    Render a validate-endpoint result.

    Returns:
        (text, proceed) where proceed is True only for approving classifications
    """
    classification = result.classification.lower()
    stamp = f"{result.date} at {result.time}"

    if classification in _APPROVED:
        return (
            "✅ The content has been verified and approved.\n\n"
            f"Verification details:\n- Status: {result.classification}\n"
            f"- Message: {result.message}\n- Verified on: {stamp}",
            True,
        )
    if classification in _PENDING:
        return (
            "⏳ Your content is still being processed.\n\n"
            f"Verification details:\n- Status: {result.classification}\n"
            f"- Message: {result.message}\n- Submitted on: {stamp}\n\n"
            "Please check back later for the final result.",
            False,
        )
    if classification in _REJECTED:
        return (
            "❌ The content verification was not successful.\n\n"
            f"Verification details:\n- Status: {result.classification}\n"
            f"- Reason: {result.message}\n- Verified on: {stamp}\n\n"
            "Please review and modify your content according to the feedback.",
            False,
        )
    return (
        "ℹ️ Verification result received.\n\n"
        f"Verification details:\n- Status: {result.classification}\n"
        f"- Message: {result.message}\n- Processed on: {stamp}",
        False,
    )


def payload(text: str, **fields: Any) -> dict[str, Any]:
    """Callback payload: text plus structured fields, None values dropped."""
    return {"text": text, **{k: v for k, v in fields.items() if v is not None}}
