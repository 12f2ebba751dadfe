"""End-to-end tests for VerifyContentAction.

Tests cover:
- Human-verification path (pre-check disabled, skipped, failing, uncredentialed)
- Auto-approval path (pre-check passes, no remote task)
- Local failures (credentials, empty content, invalid options)
- Remote failures and memory write failures
- No deduplication of identical submissions
- Callback contract (exactly once, failure reported)
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

import raiinmaker_verification.config.settings as settings_module
from raiinmaker_verification.agents.runtime import ActionMessage, LocalRuntime
from raiinmaker_verification.agents.verify_content import (
    VerificationState,
    VerifyContentAction,
)
from raiinmaker_verification.clients.raiinmaker_client import RaiinmakerClient
from raiinmaker_verification.config.settings import Settings
from raiinmaker_verification.data_management.memory_store import (
    CONTENT_AUTO_APPROVED,
    CONTENT_VERIFICATION,
)
from raiinmaker_verification.llm.pre_verification import ContentPreVerifier
from raiinmaker_verification.utils.identifiers import derived_uuid, is_uuid
from raiinmaker_verification.verification.responses import CONFIG_MISSING_TEXT

TASK_ID = "3f2b9c1e-aaaa-4bbb-8ccc-123456789abc"

CREDENTIALS = {"RAIINMAKER_APP_ID": "app-123", "RAIINMAKER_API_KEY": "secret-456"}


# ── Helpers ──────────────────────────────────────────────────────────────


class TaskService:
    """Stub of the remote task endpoint that counts create calls."""

    def __init__(self, response: httpx.Response = None):
        self.response = response
        self.requests: list[httpx.Request] = []
        self.created = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.response is not None:
            return self.response
        self.created += 1
        return httpx.Response(
            200, json={"success": True, "data": {"id": f"{TASK_ID[:-1]}{self.created}", "status": "pending"}}
        )

    def client_factory(self, config) -> RaiinmakerClient:
        return RaiinmakerClient.from_config(config, transport=httpx.MockTransport(self))


class Callback:
    def __init__(self):
        self.calls: list[dict] = []

    def __call__(self, payload: dict) -> None:
        self.calls.append(payload)

    @property
    def payload(self) -> dict:
        assert len(self.calls) == 1
        return self.calls[0]


def _precheck_client(passes: bool, failed_checks=None) -> AsyncMock:
    client = AsyncMock()
    client.generate_json = AsyncMock(
        return_value=json.dumps({"passes": passes, "failedChecks": failed_checks or []})
    )
    return client


def _pre_verifier_factory(client):
    return lambda config: ContentPreVerifier(config, client=client)


def _message(text: str = "Please verify 'Hello world'", user_id: str = None) -> ActionMessage:
    return ActionMessage(text=text, room_id="room-1", user_id=user_id)


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep the process environment out of credential resolution."""
    monkeypatch.setattr(
        settings_module,
        "settings",
        Settings(_env_file=None, raiinmaker_app_id="", raiinmaker_api_key="", gemini_api_key=None),
    )


@pytest.fixture
def service() -> TaskService:
    return TaskService()


@pytest.fixture
def callback() -> Callback:
    return Callback()


# ── Human verification path ──────────────────────────────────────────────


class TestHumanVerificationPath:
    @pytest.mark.asyncio
    async def test_precheck_disabled_creates_one_task(self, service, callback) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false", "GEMINI_API_KEY": "g-key"})
        precheck = _precheck_client(passes=True)
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        ok = await action.handler(runtime, _message(), None, callback)

        assert ok is True
        assert service.created == 1
        precheck.generate_json.assert_not_called()

        payload = callback.payload
        assert payload["status"] == "pending"
        assert payload["taskId"]
        assert payload["nextSteps"]
        assert "🔍 Task ID:" in payload["text"]

        memories = await runtime.memory.get_memories("room-1")
        assert len(memories) == 1
        memory = memories[0]
        assert memory.task_type == CONTENT_VERIFICATION
        assert memory.task_id == payload["taskId"]
        assert memory.metadata["content"] == "Hello world"
        assert memory.id == derived_uuid(f"verification-{payload['taskId']}")
        assert f"with ID: {payload['taskId']}" in memory.text

    @pytest.mark.asyncio
    async def test_request_carries_content_and_options(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        await action.handler(
            runtime,
            _message(),
            {"consensus_votes": 5, "question": "Safe to tweet?", "campaign_id": "camp-1"},
        )

        body = json.loads(service.requests[0].content)
        assert body["subject"] == "Hello world"
        assert body["consensusVotes"] == 5
        assert body["question"] == "Safe to tweet?"
        assert body["campaignId"] == "camp-1"
        assert body["name"] == "Content Verification"

    @pytest.mark.asyncio
    async def test_explicit_content_option_wins(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        await action.handler(runtime, _message(), {"content": "Launch day!"})

        assert json.loads(service.requests[0].content)["subject"] == "Launch day!"

    @pytest.mark.asyncio
    async def test_precheck_without_credential_creates_task(self, service, callback) -> None:
        runtime = LocalRuntime(CREDENTIALS)
        action = VerifyContentAction(service.client_factory)

        outcome = await action.execute(runtime, _message())

        assert outcome.state is VerificationState.TASK_CREATED
        assert outcome.history == [
            VerificationState.RECEIVED,
            VerificationState.PRE_CHECK_SKIPPED,
            VerificationState.TASK_CREATED,
        ]
        assert service.created == 1

    @pytest.mark.asyncio
    async def test_failing_precheck_goes_to_humans(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "GEMINI_API_KEY": "g-key"})
        precheck = _precheck_client(passes=False, failed_checks=["Contains profanity"])
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        outcome = await action.execute(runtime, _message())

        assert outcome.state is VerificationState.TASK_CREATED
        assert VerificationState.PRE_CHECKED in outcome.history
        assert outcome.pre_verification.failed_checks == ["Contains profanity"]
        assert service.created == 1

    @pytest.mark.asyncio
    async def test_skip_option_bypasses_precheck(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "GEMINI_API_KEY": "g-key"})
        precheck = _precheck_client(passes=True)
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        outcome = await action.execute(runtime, _message(), {"skip_pre_verification": True})

        assert outcome.state is VerificationState.TASK_CREATED
        precheck.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_identical_content_not_deduplicated(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        first = await action.execute(runtime, _message())
        second = await action.execute(runtime, _message())

        assert service.created == 2
        assert first.task_id != second.task_id
        assert len(await runtime.memory.get_memories("room-1")) == 2

    @pytest.mark.asyncio
    async def test_non_uuid_user_id_normalised(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        await action.execute(runtime, _message(user_id="user-42"))

        memory = (await runtime.memory.get_memories("room-1"))[0]
        assert is_uuid(memory.user_id)


# ── Auto-approval path ───────────────────────────────────────────────────


class TestAutoApprovalPath:
    @pytest.mark.asyncio
    async def test_passing_precheck_skips_remote_task(self, service, callback) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "GEMINI_API_KEY": "g-key"})
        precheck = _precheck_client(passes=True)
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        ok = await action.handler(runtime, _message(), None, callback)

        assert ok is True
        assert service.created == 0
        assert service.requests == []

        payload = callback.payload
        assert payload["status"] == "approved"
        assert payload["skipHumanVerification"] is True
        assert payload["verificationResult"]["answer"] is True
        assert payload["verificationResult"]["status"] == "completed"
        assert payload["verificationResult"]["votesReceived"] == 0

        memories = await runtime.memory.get_memories("room-1")
        assert len(memories) == 1
        assert memories[0].task_type == CONTENT_AUTO_APPROVED
        assert memories[0].task_id == payload["taskId"]
        assert is_uuid(payload["taskId"])

    @pytest.mark.asyncio
    async def test_checklist_from_host_setting(self, service) -> None:
        runtime = LocalRuntime({
            **CREDENTIALS,
            "GEMINI_API_KEY": "g-key",
            "CONTENT_CHECKLIST": ["Mentions the launch date"],
        })
        precheck = _precheck_client(passes=True)
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        await action.execute(runtime, _message())

        prompt = precheck.generate_json.call_args.args[0]
        assert "1. Mentions the launch date" in prompt

    @pytest.mark.asyncio
    async def test_checklist_option_wins(self, service) -> None:
        runtime = LocalRuntime({
            **CREDENTIALS,
            "GEMINI_API_KEY": "g-key",
            "CONTENT_CHECKLIST": ["From settings"],
        })
        precheck = _precheck_client(passes=True)
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        await action.execute(runtime, _message(), {"checklist": ["From options"]})

        prompt = precheck.generate_json.call_args.args[0]
        assert "From options" in prompt
        assert "From settings" not in prompt

    @pytest.mark.asyncio
    async def test_broken_precheck_fails_open(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "GEMINI_API_KEY": "g-key"})
        precheck = AsyncMock()
        precheck.generate_json = AsyncMock(side_effect=TimeoutError("slow"))
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        outcome = await action.execute(runtime, _message())

        assert outcome.state is VerificationState.AUTO_APPROVED
        assert service.created == 0

    @pytest.mark.asyncio
    async def test_broken_precheck_fails_closed_when_configured(self, service) -> None:
        runtime = LocalRuntime({
            **CREDENTIALS,
            "GEMINI_API_KEY": "g-key",
            "PRE_VERIFICATION_FAIL_OPEN": "false",
        })
        precheck = AsyncMock()
        precheck.generate_json = AsyncMock(side_effect=TimeoutError("slow"))
        action = VerifyContentAction(service.client_factory, _pre_verifier_factory(precheck))

        outcome = await action.execute(runtime, _message())

        assert outcome.state is VerificationState.TASK_CREATED
        assert service.created == 1


# ── Failures ─────────────────────────────────────────────────────────────


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_credentials(self, service, callback) -> None:
        action = VerifyContentAction(service.client_factory)

        ok = await action.handler(LocalRuntime({}), _message(), None, callback)

        assert ok is False
        assert callback.payload["text"] == CONFIG_MISSING_TEXT
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_empty_content(self, service, callback) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        ok = await action.handler(runtime, _message(text="   "), None, callback)

        assert ok is False
        assert "couldn't identify any content" in callback.payload["text"]
        assert service.requests == []
        assert await runtime.memory.get_memories("room-1") == []

    @pytest.mark.asyncio
    async def test_invalid_options(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        outcome = await action.execute(runtime, _message(), {"consensus_votes": 0})

        assert outcome.state is VerificationState.FAILED
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_api_error_reported(self, callback) -> None:
        service = TaskService(httpx.Response(401, json={"message": "Invalid app secret"}))
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        ok = await action.handler(runtime, _message(), None, callback)

        assert ok is False
        assert callback.payload["text"].startswith(
            "There was an error with the Raiinmaker API: Invalid app secret"
        )
        assert await runtime.memory.get_memories("room-1") == []

    @pytest.mark.asyncio
    async def test_memory_write_failure_fails_action(self, service, callback) -> None:
        memory = AsyncMock()
        memory.create_memory = AsyncMock(side_effect=RuntimeError("store offline"))
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"}, memory=memory)
        action = VerifyContentAction(service.client_factory)

        ok = await action.handler(runtime, _message(), None, callback)

        assert ok is False
        assert service.created == 1
        assert "trouble submitting" in callback.payload["text"]

    @pytest.mark.asyncio
    async def test_callback_failure_returns_false(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        async def broken_callback(payload):
            raise RuntimeError("host went away")

        assert await action.handler(runtime, _message(), None, broken_callback) is False

    @pytest.mark.asyncio
    async def test_without_callback(self, service) -> None:
        runtime = LocalRuntime({**CREDENTIALS, "ENABLE_PRE_VERIFICATION": "false"})
        action = VerifyContentAction(service.client_factory)

        assert await action.handler(runtime, _message()) is True

    @pytest.mark.asyncio
    async def test_validate_reflects_credentials(self, service) -> None:
        action = VerifyContentAction(service.client_factory)

        assert await action.validate(LocalRuntime(CREDENTIALS), _message()) is True
        assert await action.validate(LocalRuntime({}), _message()) is False
