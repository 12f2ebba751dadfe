"""Tests for ActionRegistry and plugin assembly."""

from unittest.mock import AsyncMock

import pytest
from structlog.contextvars import get_contextvars

import raiinmaker_verification.config.settings as settings_module
from raiinmaker_verification.agents.registry import ActionRegistry, create_plugin
from raiinmaker_verification.agents.runtime import ActionMessage, LocalRuntime
from raiinmaker_verification.agents.verify_content import VerifyContentAction
from raiinmaker_verification.config.settings import Settings

CREDENTIALS = {"RAIINMAKER_APP_ID": "app-123", "RAIINMAKER_API_KEY": "secret-456"}


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setattr(
        settings_module,
        "settings",
        Settings(_env_file=None, raiinmaker_app_id="", raiinmaker_api_key="", gemini_api_key=None),
    )


class TestCreatePlugin:
    def test_four_actions(self) -> None:
        registry = create_plugin()
        assert sorted(registry.get_statistics()["actions"]) == [
            "CHECK_VERIFICATION_STATUS",
            "GET_RAIIN_DATA_VERIFICATION",
            "GET_RAIIN_QUEST_STATUS",
            "VERIFY_GENERATION_CONTENT",
        ]

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("VERIFY_GENERATION_CONTENT", "VERIFY_GENERATION_CONTENT"),
            ("verify_tweet", "VERIFY_GENERATION_CONTENT"),
            ("CHECK_TASK_STATUS", "CHECK_VERIFICATION_STATUS"),
            ("CHECK_QUEST_STATUS", "GET_RAIIN_QUEST_STATUS"),
            ("VERIFY_DATA", "GET_RAIIN_DATA_VERIFICATION"),
        ],
    )
    def test_lookup_by_simile(self, alias, expected) -> None:
        assert create_plugin().get(alias).name == expected

    def test_unknown_name(self) -> None:
        assert create_plugin().get("DO_SOMETHING_ELSE") is None

    def test_describe(self) -> None:
        infos = {info.name: info for info in create_plugin().describe()}
        assert "VERIFY_POST" in infos["VERIFY_GENERATION_CONTENT"].similes


class TestActionRegistry:
    def test_duplicate_names_rejected(self) -> None:
        registry = ActionRegistry()
        registry.register(VerifyContentAction())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(VerifyContentAction())

    @pytest.mark.asyncio
    async def test_dispatch_unknown_raises(self) -> None:
        with pytest.raises(KeyError):
            await create_plugin().dispatch("NOPE", LocalRuntime(CREDENTIALS), ActionMessage("x", "room-1"))

    @pytest.mark.asyncio
    async def test_dispatch_gated_on_credentials(self) -> None:
        registry = ActionRegistry()
        action = VerifyContentAction()
        action.handler = AsyncMock(return_value=True)
        registry.register(action)
        calls = []

        ok = await registry.dispatch(
            "VERIFY_POST", LocalRuntime({}), ActionMessage("'hi'", "room-1"), None, calls.append
        )

        assert ok is False
        action.handler.assert_not_called()
        assert calls == []

    @pytest.mark.asyncio
    async def test_dispatch_runs_handler(self) -> None:
        registry = ActionRegistry()
        action = VerifyContentAction()
        action.handler = AsyncMock(return_value=True)
        registry.register(action)
        message = ActionMessage("'hi'", "room-1")
        runtime = LocalRuntime(CREDENTIALS)

        ok = await registry.dispatch("CHECK_CONTENT", runtime, message, {"content": "hi"})

        assert ok is True
        action.handler.assert_awaited_once_with(runtime, message, {"content": "hi"}, None)

    @pytest.mark.asyncio
    async def test_dispatch_binds_log_context(self) -> None:
        registry = ActionRegistry()
        action = VerifyContentAction()
        seen = {}

        async def record_context(*args):
            seen.update(get_contextvars())
            return True

        action.handler = AsyncMock(side_effect=record_context)
        registry.register(action)

        await registry.dispatch("VERIFY_TWEET", LocalRuntime(CREDENTIALS), ActionMessage("'hi'", "room-7"))

        assert seen["action"] == "VERIFY_GENERATION_CONTENT"
        assert seen["room_id"] == "room-7"
        assert "action" not in get_contextvars()
