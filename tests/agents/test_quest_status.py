"""Tests for QuestStatusAction and query building."""

from datetime import datetime, timezone

import httpx
import pytest

import raiinmaker_verification.config.settings as settings_module
from raiinmaker_verification.agents.quest_status import QuestStatusAction, build_query
from raiinmaker_verification.agents.runtime import ActionMessage, LocalRuntime
from raiinmaker_verification.clients.raiinmaker_client import RaiinmakerClient
from raiinmaker_verification.clients.schemas import TaskStatus, TaskType
from raiinmaker_verification.config.settings import Settings

CREDENTIALS = {"RAIINMAKER_APP_ID": "app-123", "RAIINMAKER_API_KEY": "secret-456"}


class ListingService:
    def __init__(self, items: list, status_code: int = 200):
        self.items = items
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"message": "Unauthorized"})
        return httpx.Response(
            200, json={"success": True, "data": {"items": self.items, "total": len(self.items)}}
        )

    def client_factory(self, config) -> RaiinmakerClient:
        return RaiinmakerClient.from_config(config, transport=httpx.MockTransport(self))


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setattr(
        settings_module,
        "settings",
        Settings(_env_file=None, raiinmaker_app_id="", raiinmaker_api_key="", gemini_api_key=None),
    )


class TestBuildQuery:
    def test_all_filters(self) -> None:
        now = datetime(2024, 3, 31, tzinfo=timezone.utc)
        query = build_query("completed bool quests this week", now=now)

        assert query.status is TaskStatus.COMPLETED
        assert query.type is TaskType.BOOL
        assert query.start_date == "2024-03-24"
        assert query.end_date == "2024-03-31"

    def test_no_filters(self) -> None:
        query = build_query("show my quests")
        assert query.to_params() == {"page": "0", "limit": "10"}


class TestQuestStatusAction:
    @pytest.mark.asyncio
    async def test_lists_tasks(self) -> None:
        service = ListingService([
            {"id": "1", "name": "Tweet check", "status": "completed", "type": "BOOL",
             "question": "OK?", "answer": "true"},
        ])
        action = QuestStatusAction(service.client_factory)
        calls = []

        ok = await action.handler(
            LocalRuntime(CREDENTIALS),
            ActionMessage("show my completed bool quests", "room-1"),
            None,
            calls.append,
        )

        assert ok is True
        assert len(calls) == 1
        assert calls[0]["text"].startswith("Here are your Raiinmaker quests (completed) of type BOOL:")
        assert "• Tweet check (completed)" in calls[0]["text"]
        assert calls[0]["total"] == 1

        params = service.requests[0].url.params
        assert params["status"] == "completed"
        assert params["type"] == "BOOL"

    @pytest.mark.asyncio
    async def test_empty_listing_fails(self) -> None:
        service = ListingService([])
        action = QuestStatusAction(service.client_factory)
        calls = []

        ok = await action.handler(LocalRuntime(CREDENTIALS), ActionMessage("quests today", "room-1"), None, calls.append)

        assert ok is False
        assert calls == [{"text": "I couldn't find any quests matching your criteria."}]

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        service = ListingService([], status_code=401)
        action = QuestStatusAction(service.client_factory)
        calls = []

        ok = await action.handler(LocalRuntime(CREDENTIALS), ActionMessage("quests", "room-1"), None, calls.append)

        assert ok is False
        assert "Unauthorized" in calls[0]["text"]

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        service = ListingService([])
        action = QuestStatusAction(service.client_factory)
        calls = []

        ok = await action.handler(LocalRuntime({}), ActionMessage("quests", "room-1"), None, calls.append)

        assert ok is False
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_raising_callback_called_once(self) -> None:
        service = ListingService([{"id": "1", "name": "Tweet check", "status": "pending", "type": "BOOL"}])
        action = QuestStatusAction(service.client_factory)
        calls = []

        def broken_callback(payload):
            calls.append(payload)
            raise RuntimeError("host callback broke")

        ok = await action.handler(LocalRuntime(CREDENTIALS), ActionMessage("quests", "room-1"), None, broken_callback)

        assert ok is False
        assert len(calls) == 1
        assert calls[0]["total"] == 1
