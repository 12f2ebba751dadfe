"""Identifier helpers for memory entries and locally approved tasks."""

import hashlib
import re
import uuid
from typing import Optional

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Namespace for ids derived from task ids and content fingerprints
RAIINMAKER_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://seed.raiinmaker.com")


def is_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(_UUID_PATTERN.match(value))


def ensure_uuid(value: Optional[str]) -> str:
    """Return value if it is already a UUID string, otherwise a fresh UUID4."""
    if value and is_uuid(value):
        return value
    return str(uuid.uuid4())


def derived_uuid(name: str) -> str:
    """Deterministic UUID5 for a name within the plugin namespace."""
    return str(uuid.uuid5(RAIINMAKER_NAMESPACE, name))


def content_fingerprint(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def auto_approved_task_id(content: str, timestamp_ms: int) -> str:
    """
    Synthesize the local task id used for content approved by the pre-check.

    The same content approved at the same millisecond always maps to the
    same id; the remote service never sees it.
    """
    return derived_uuid(f"auto-verified-{content_fingerprint(content)}-{timestamp_ms}")


def short_id(task_id: str, length: int = 8) -> str:
    return f"{task_id[:length]}..." if len(task_id) > length else task_id
