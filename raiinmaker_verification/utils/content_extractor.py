"""Free-text heuristics for pulling verification inputs out of chat messages.

None of this is a parser. Each helper tries a short list of patterns in
priority order and returns the first hit, or an empty/None result.
"""

import calendar
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from raiinmaker_verification.clients.schemas import TaskStatus, TaskType

_PHRASE_PATTERNS = [
    re.compile(
        r"(?:verify|check|validate|is\s+this\s+(?:appropriate|good))(?:\s*this)?"
        r"(?:\s*content|tweet|post)?[:\s-]+(.+)$",
        re.IGNORECASE,
    ),
    re.compile(r"(?:is\s+this\s+(?:appropriate|good))[:\s-]+(.+)$", re.IGNORECASE),
    re.compile(r"(?:content|tweet|post)[:\s-]+[\"']?([^\"']+)[\"']?$", re.IGNORECASE),
]

_REQUEST_PREFIX = re.compile(
    r"(?:can you |please |could you )?"
    r"(?:verify|check|validate|is this good|is this appropriate)"
    r"(?:\s+if|\s+whether)?\s*",
    re.IGNORECASE,
)
_FILLER_WORDS = re.compile(
    r"(?:this |the |following |content |tweet |post |message )+", re.IGNORECASE
)

_TASK_ID_LABELLED = re.compile(r"task\s*ID\s*(?:is|:|=)?\s*([a-zA-Z0-9-]+)", re.IGNORECASE)
_TASK_ID_AFTER_VERB = re.compile(
    r"(?:check|verify|status|task)\s*(?:for|of)?\s*([a-f0-9-]{8,})", re.IGNORECASE
)
_TASK_ID_BARE = re.compile(r"([a-f0-9-]{8,})", re.IGNORECASE)


def extract_verifiable_content(message_text: str) -> str:
    """
    Extract the content a user wants verified.

    Order: single-quoted text, double-quoted text, text following a
    verification phrase, then the whole message minus request phrasing.
    """
    if not message_text:
        return ""

    single = re.search(r"'([^']+)'", message_text)
    if single:
        return single.group(1)

    double = re.search(r'"([^"]+)"', message_text)
    if double:
        return double.group(1)

    for pattern in _PHRASE_PATTERNS:
        match = pattern.search(message_text)
        if match and match.group(1).strip():
            return match.group(1).strip()

    cleaned = _REQUEST_PREFIX.sub("", message_text, count=1)
    cleaned = _FILLER_WORDS.sub("", cleaned, count=1)
    return cleaned.strip()


def _first_match(text: str, patterns: Iterable[re.Pattern]) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_task_id(message_text: str) -> Optional[str]:
    """Find a task id in a user message."""
    if not message_text:
        return None
    return _first_match(
        message_text, (_TASK_ID_LABELLED, _TASK_ID_AFTER_VERB, _TASK_ID_BARE)
    )


def extract_task_id_from_memory_text(text: str) -> Optional[str]:
    """Find a task id in the text of a stored memory entry."""
    if not text:
        return None
    return _first_match(text, (_TASK_ID_LABELLED, _TASK_ID_BARE))


def _months_ago(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def parse_date_range(
    text: str, now: Optional[datetime] = None
) -> dict[str, str]:
    """
    Turn coarse phrases into explicit ISO dates.

    "today" -> today..today, "week" -> 7 days ago..today,
    "month" -> one calendar month ago..today. Anything else -> {}.
    """
    now = now or datetime.now(timezone.utc)
    text = text.lower()
    today = now.date().isoformat()

    if "today" in text:
        return {"start_date": today, "end_date": today}
    if "week" in text:
        return {"start_date": (now - timedelta(days=7)).date().isoformat(), "end_date": today}
    if "month" in text:
        return {"start_date": _months_ago(now, 1).date().isoformat(), "end_date": today}
    return {}


def parse_status(text: str) -> Optional[TaskStatus]:
    text = text.lower()
    if any(word in text for word in ("complete", "finished", "done")):
        return TaskStatus.COMPLETED
    if any(word in text for word in ("pending", "ongoing", "active")):
        return TaskStatus.PENDING
    return None


def parse_type(text: str) -> Optional[TaskType]:
    text = text.lower()
    # first keyword wins
    for keyword, task_type in (
        ("category", TaskType.CATEGORY),
        ("scale", TaskType.SCALE),
        ("bool", TaskType.BOOL),
        ("tag", TaskType.TAG),
    ):
        if keyword in text:
            return task_type
    return None
