"""Typed views of Raiinmaker API payloads.

The remote schema is only partially trusted, so every field the service may
omit is optional here and unknown fields are kept. Payloads are validated
once, in the client, and the rest of the package works with these models.

String-encoded verdicts ("true"/"yes"/"false"/"no") are translated into the
three-valued Answer enum at this boundary.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_TASK_NAME = "Content Verification Task"
DEFAULT_QUESTION = "Is this content appropriate for an AI agent to post?"
DEFAULT_CONSENSUS_VOTES = 3
DEFAULT_REPUTATION = "ANY"
MIN_PAGE_SIZE = 10


class TaskType(str, Enum):
    BOOL = "BOOL"
    SCALE = "SCALE"
    TAG = "TAG"
    CATEGORY = "CATEGORY"


class TaskStatus(str, Enum):
    """Lifecycle states reported by the service. None are generated locally."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    AUTOMATIC = "automatic"


class Answer(str, Enum):
    """Three-valued verdict. UNRESOLVED is a real state, not a rejection."""

    APPROVED = "approved"
    REJECTED = "rejected"
    UNRESOLVED = "unresolved"

    @classmethod
    def from_task_answer(cls, raw: Optional[str]) -> "Answer":
        """Task-level answers accept "true"/"yes" and "false"/"no", case-sensitive."""
        if raw in ("true", "yes"):
            return cls.APPROVED
        if raw in ("false", "no"):
            return cls.REJECTED
        return cls.UNRESOLVED

    @classmethod
    def from_vote_answer(cls, raw: Optional[str]) -> "Answer":
        """Votes use the stricter encoding: only "true" and "false" count."""
        if raw == "true":
            return cls.APPROVED
        if raw == "false":
            return cls.REJECTED
        return cls.UNRESOLVED

    def as_bool(self) -> Optional[bool]:
        if self is Answer.APPROVED:
            return True
        if self is Answer.REJECTED:
            return False
        return None


class RemoteModel(BaseModel):
    """Base for payloads exchanged with the API (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Vote(RemoteModel):
    id: str = ""
    answer: Optional[str] = None
    task_id: Optional[str] = None
    user_id: Optional[str] = None
    reputation_score: Optional[float] = None
    reputation_rating: Optional[str] = None
    reputation_percentile: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    metadata: Any = None

    @property
    def verdict(self) -> Answer:
        return Answer.from_vote_answer(self.answer)


class Task(RemoteModel):
    id: str = ""
    org_id: Any = None
    app_id: Any = None
    campaign_id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    categories: Optional[list[str]] = None
    scale_min: Optional[float] = None
    scale_max: Optional[float] = None
    expiry: Any = None
    pool_id: Optional[str] = None
    human_required: Optional[bool] = None
    consensus_votes: Optional[int] = None
    reputation: Optional[str] = None
    question: Optional[str] = None
    subject: Optional[str] = None
    image_url: Optional[str] = None
    answer: Optional[str] = None
    credit_cost: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    metadata: Any = None

    @property
    def verdict(self) -> Answer:
        return Answer.from_task_answer(self.answer)


class TaskWithVotes(Task):
    votes: list[Vote] = Field(default_factory=list)


class TaskPage(BaseModel):
    items: list[Task] = Field(default_factory=list)
    total: int = 0


class CreateTaskOptions(BaseModel):
    """Caller-facing options for a new verification task."""

    name: str = DEFAULT_TASK_NAME
    consensus_votes: int = Field(default=DEFAULT_CONSENSUS_VOTES, ge=1)
    question: str = DEFAULT_QUESTION
    campaign_id: Optional[str] = None
    reputation: str = DEFAULT_REPUTATION


class CreateTaskRequest(RemoteModel):
    """Fixed-shape body for POST /task."""

    name: str
    type: TaskType = TaskType.BOOL
    human_required: bool = True
    consensus_votes: int
    reputation: str
    question: str
    subject: str
    campaign_id: Optional[str] = None

    @classmethod
    def for_content(cls, content: str, options: CreateTaskOptions) -> "CreateTaskRequest":
        return cls(
            name=options.name or DEFAULT_TASK_NAME,
            consensus_votes=options.consensus_votes or DEFAULT_CONSENSUS_VOTES,
            reputation=options.reputation,
            question=options.question or DEFAULT_QUESTION,
            subject=content,
            campaign_id=options.campaign_id or None,
        )


class TaskQuery(BaseModel):
    """Filter for GET /task."""

    page: int = 0
    limit: Optional[int] = None
    campaign_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    status: Optional[TaskStatus] = None
    type: Optional[TaskType] = None

    def to_params(self) -> dict[str, str]:
        # the API rejects page sizes under 10, so smaller limits fall back to the default
        limit = self.limit if self.limit is not None and self.limit >= MIN_PAGE_SIZE else MIN_PAGE_SIZE
        params = {"page": str(self.page), "limit": str(limit)}
        if self.campaign_id:
            params["campaignId"] = self.campaign_id
        if self.start_date:
            params["startDate"] = self.start_date
        if self.end_date:
            params["endDate"] = self.end_date
        if self.status:
            params["status"] = self.status.value
        if self.type:
            params["type"] = self.type.value
        return params


class DataVerificationResult(BaseModel):
    """Outcome of POST /validate. date/time are stamped locally."""

    classification: str = "unknown"
    message: str = "No message provided"
    date: str
    time: str
    url: str = "https://seed.raiinmaker.com"


class CampaignStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class VerificationType(str, Enum):
    HUMAN = "HUMAN"
    AUTOMATIC = "AUTOMATIC"


class Campaign(RemoteModel):
    id: str = ""
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    verification_type: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateCampaignParams(BaseModel):
    name: str
    verification_type: VerificationType
    description: Optional[str] = None
    status: Optional[CampaignStatus] = None
    image: Optional[bytes] = None


class UpdateCampaignParams(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[CampaignStatus] = None
    image: Optional[bytes] = None
