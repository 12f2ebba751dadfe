"""Error type raised for every remote Raiinmaker API failure."""

from typing import Any, Optional


class RaiinmakerApiError(Exception):
    """
    A failure talking to the Raiinmaker API.

    Local input problems (missing credentials, empty ids or content) are
    raised as ValueError before any request is made; everything that goes
    wrong on or after the wire is a RaiinmakerApiError.

    Attributes:
        status: HTTP status code, when a response was received
        endpoint: Logical endpoint name (e.g. "get_task_by_id")
        details: Parsed error body, raw text, or the underlying exception
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        endpoint: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.endpoint = endpoint
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        details = self.details
        if isinstance(details, BaseException):
            details = repr(details)
        return {
            "message": self.message,
            "status": self.status,
            "endpoint": self.endpoint,
            "details": details,
        }

    def __repr__(self) -> str:
        return (
            f"RaiinmakerApiError({self.message!r}, status={self.status!r}, "
            f"endpoint={self.endpoint!r})"
        )
