"""Verification orchestrator: submit content for human verification.

State machine per submitted content string:

    RECEIVED -> PRE_CHECKED | PRE_CHECK_SKIPPED
             -> AUTO_APPROVED | TASK_CREATED | FAILED

- Empty content or missing credentials fail immediately, no remote calls.
- When the automated pre-check is enabled, not skipped and passes, the
  content is approved locally: a local task id is synthesized, one
  contentAutoApproved memory is written and no remote task is created.
- Otherwise a BOOL task is created remotely and one contentVerification
  memory is written under the returned task id.

Identical content submitted twice creates two independent tasks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from raiinmaker_verification.agents.base_action import BaseAction, ClientFactory
from raiinmaker_verification.agents.runtime import (
    ActionMessage,
    AgentRuntime,
    HandlerCallback,
)
from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.clients.schemas import (
    DEFAULT_CONSENSUS_VOTES,
    DEFAULT_QUESTION,
    CreateTaskOptions,
    TaskStatus,
)
from raiinmaker_verification.config.settings import ConfigurationError, VerificationConfig
from raiinmaker_verification.data_management.memory_store import (
    CONTENT_AUTO_APPROVED,
    CONTENT_VERIFICATION,
    MemoryEntry,
    now_ms,
)
from raiinmaker_verification.llm.pre_verification import (
    ContentPreVerifier,
    PreVerificationResult,
    checklist_from_setting,
)
from raiinmaker_verification.utils.content_extractor import extract_verifiable_content
from raiinmaker_verification.utils.identifiers import (
    auto_approved_task_id,
    derived_uuid,
    ensure_uuid,
)
from raiinmaker_verification.verification.responses import (
    AUDIT_PREVIEW_LENGTH,
    CONFIG_MISSING_TEXT,
    auto_approved_text,
    format_verification_response,
    payload,
    submitted_text,
)
from raiinmaker_verification.verification.status import APPROVED_GLYPH, VerificationStatusResponse

APPROVED_STATUS = "approved"

NO_CONTENT_TEXT = (
    "I couldn't identify any content to verify. Please provide some content by "
    "quoting it or clearly indicating what you'd like me to verify."
)
SUBMIT_FAILED_TEXT = (
    "I apologize, but I wasn't able to submit the content for verification. "
    "There might be an issue with the verification service."
)
GENERIC_FAILURE_TEXT = (
    "I apologize, but I'm having trouble submitting the content for verification "
    "at the moment. Please try again later."
)

PreVerifierFactory = Callable[[VerificationConfig], ContentPreVerifier]


class VerificationState(str, Enum):
    RECEIVED = "received"
    PRE_CHECKED = "pre_checked"
    PRE_CHECK_SKIPPED = "pre_check_skipped"
    AUTO_APPROVED = "auto_approved"
    TASK_CREATED = "task_created"
    FAILED = "failed"


class VerifyContentOptions(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    consensus_votes: Optional[int] = Field(default=None, ge=1)
    question: Optional[str] = None
    name: Optional[str] = None
    room_id: Optional[str] = None
    campaign_id: Optional[str] = None
    skip_pre_verification: bool = False
    checklist: Optional[list[str]] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


@dataclass
class VerificationOutcome:
    """Terminal state of one orchestrator run plus the callback payload."""

    state: VerificationState
    payload: dict[str, Any]
    task_id: Optional[str] = None
    history: list[VerificationState] = field(default_factory=list)
    pre_verification: Optional[PreVerificationResult] = None

    @property
    def succeeded(self) -> bool:
        return self.state is not VerificationState.FAILED


class VerifyContentAction(BaseAction):
    """Submit content for verification, short-circuiting on a passing pre-check."""

    name = "VERIFY_GENERATION_CONTENT"
    similes = ("CHECK_CONTENT", "VALIDATE_TWEET", "VERIFY_TWEET", "VERIFY_POST")
    description = (
        "Submits content to the Raiinmaker app for verification to determine "
        "if it's appropriate for posting"
    )

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        pre_verifier_factory: Optional[PreVerifierFactory] = None,
    ):
        super().__init__(client_factory)
        self.pre_verifier_factory: PreVerifierFactory = pre_verifier_factory or ContentPreVerifier

    # ── Orchestration ────────────────────────────────────────────────────

    async def execute(
        self,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
    ) -> VerificationOutcome:
        """
        Run the state machine to a terminal state.

        Never raises; every failure becomes a FAILED outcome.
        """
        history = [VerificationState.RECEIVED]

        def fail(text: str) -> VerificationOutcome:
            history.append(VerificationState.FAILED)
            return VerificationOutcome(VerificationState.FAILED, payload(text), history=history)

        try:
            opts = VerifyContentOptions.model_validate(options or {})
        except ValidationError as e:
            self.logger.error(f"Invalid options for {self.name}: {e}")
            return fail(GENERIC_FAILURE_TEXT)

        try:
            config = self.resolve_config(runtime)
        except ConfigurationError as e:
            self.logger.error(str(e))
            return fail(CONFIG_MISSING_TEXT)

        content = opts.content or extract_verifiable_content(message.text or "")
        if not content or not content.strip():
            return fail(NO_CONTENT_TEXT)

        user_id = ensure_uuid(message.user_id)
        room_id = opts.room_id or message.room_id
        self.logger.info(f"Processing verification for content from user {user_id}")

        try:
            pre_result: Optional[PreVerificationResult] = None
            if config.pre_verification_enabled and not opts.skip_pre_verification:
                pre_result = await self._pre_check(runtime, config, content, opts)
                history.append(VerificationState.PRE_CHECKED)
            else:
                self.logger.info("Pre-verification skipped, going straight to human verification")
                history.append(VerificationState.PRE_CHECK_SKIPPED)

            if pre_result is not None and pre_result.passes:
                outcome = await self._auto_approve(runtime, content, user_id, room_id)
            else:
                outcome = await self._create_task(runtime, config, content, user_id, room_id, opts)
        except RaiinmakerApiError as e:
            self.logger.bind(api_error=e.to_dict()).error(f"Raiinmaker API Error: {e}")
            return fail(
                f"There was an error with the Raiinmaker API: {e}\n\n"
                "This might indicate an issue with your API credentials or the API service."
            )
        except Exception as e:
            self.logger.exception(f"Error in {self.name} handler: {e}")
            return fail(GENERIC_FAILURE_TEXT)

        history.append(outcome.state)
        outcome.history = history
        outcome.pre_verification = pre_result
        return outcome

    async def _pre_check(
        self,
        runtime: AgentRuntime,
        config: VerificationConfig,
        content: str,
        opts: VerifyContentOptions,
    ) -> PreVerificationResult:
        self.logger.info("Running content pre-verification check")
        checklist = opts.checklist or checklist_from_setting(runtime.get_setting("CONTENT_CHECKLIST"))
        result = await self.pre_verifier_factory(config).pre_verify(content, checklist)
        if not result.passes:
            self.logger.info(
                f"Content failed pre-verification checks: {', '.join(result.failed_checks)}"
            )
        return result

    async def _auto_approve(
        self,
        runtime: AgentRuntime,
        content: str,
        user_id: str,
        room_id: str,
    ) -> VerificationOutcome:
        self.logger.info("Content passed pre-verification checks, skipping human verification")
        timestamp = now_ms()
        task_id = auto_approved_task_id(content, timestamp)

        result = VerificationStatusResponse(
            task_id=task_id,
            status=TaskStatus.COMPLETED.value,
            answer=True,
            question="Is this content appropriate for posting?",
            subject=content,
            formatted_text=(
                f"{APPROVED_GLYPH} Content Verification - The verification is complete. "
                "The content was approved automatically by AI."
            ),
        )

        await runtime.memory.create_memory(MemoryEntry(
            id=derived_uuid(f"verification-auto-approved-{task_id}"),
            room_id=room_id,
            user_id=user_id,
            agent_id=ensure_uuid(runtime.agent_id),
            text=f'Content auto-approved by AI verification: "{content[:AUDIT_PREVIEW_LENGTH]}..."',
            metadata={
                "taskType": CONTENT_AUTO_APPROVED,
                "taskId": task_id,
                "content": content,
                "timestamp": timestamp,
            },
            created_at=timestamp,
        ))

        return VerificationOutcome(
            VerificationState.AUTO_APPROVED,
            payload(
                auto_approved_text(content),
                status=APPROVED_STATUS,
                skipHumanVerification=True,
                taskId=task_id,
                verificationResult=result.to_payload(),
            ),
            task_id=task_id,
        )

    async def _create_task(
        self,
        runtime: AgentRuntime,
        config: VerificationConfig,
        content: str,
        user_id: str,
        room_id: str,
        opts: VerifyContentOptions,
    ) -> VerificationOutcome:
        task_options = CreateTaskOptions(
            name=opts.name or "Content Verification",
            consensus_votes=opts.consensus_votes or DEFAULT_CONSENSUS_VOTES,
            question=opts.question or DEFAULT_QUESTION,
            campaign_id=opts.campaign_id,
        )

        client = self.client_factory(config)
        async with client:
            task = await client.create_verification_task(content, task_options)

        if not task.id:
            self.logger.error("Failed to create verification task: Invalid response from Raiinmaker service")
            return VerificationOutcome(VerificationState.FAILED, payload(SUBMIT_FAILED_TEXT))

        timestamp = now_ms()
        await runtime.memory.create_memory(MemoryEntry(
            id=derived_uuid(f"verification-{task.id}"),
            room_id=room_id,
            user_id=user_id,
            agent_id=ensure_uuid(runtime.agent_id),
            text=f'Verification task created for "{content[:AUDIT_PREVIEW_LENGTH]}..." with ID: {task.id}',
            metadata={
                "taskType": CONTENT_VERIFICATION,
                "taskId": task.id,
                "content": content,
                "timestamp": timestamp,
            },
            created_at=timestamp,
        ))

        summary = format_verification_response(True, task.id, TaskStatus.PENDING.value)
        return VerificationOutcome(
            VerificationState.TASK_CREATED,
            payload(
                submitted_text(content, task.id),
                taskId=task.id,
                status=TaskStatus.PENDING.value,
                nextSteps=summary.next_steps,
            ),
            task_id=task.id,
        )

    # ── Host entry point ─────────────────────────────────────────────────

    async def handler(
        self,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> bool:
        outcome = await self.execute(runtime, message, options)
        self.logger.info(
            f"Verification finished in state {outcome.state.value}",
            task_id=outcome.task_id,
        )
        return await self.respond(callback, outcome.payload, outcome.succeeded)
