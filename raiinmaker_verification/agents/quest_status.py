"""Quest listing: filter the caller's tasks by date range, status and type."""

from datetime import datetime
from typing import Any, Optional

from raiinmaker_verification.agents.base_action import BaseAction
from raiinmaker_verification.agents.runtime import (
    ActionMessage,
    AgentRuntime,
    HandlerCallback,
)
from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.clients.schemas import TaskQuery
from raiinmaker_verification.config.settings import ConfigurationError
from raiinmaker_verification.utils.content_extractor import (
    parse_date_range,
    parse_status,
    parse_type,
)
from raiinmaker_verification.verification.responses import (
    CONFIG_MISSING_TEXT,
    format_quest_list,
    payload,
)

NO_QUESTS_TEXT = "I couldn't find any quests matching your criteria."


def build_query(text: str, now: Optional[datetime] = None) -> TaskQuery:
    """Translate free text into a TaskQuery. Unrecognised text means no filter."""
    return TaskQuery(
        **parse_date_range(text, now=now),
        status=parse_status(text),
        type=parse_type(text),
    )


class QuestStatusAction(BaseAction):
    name = "GET_RAIIN_QUEST_STATUS"
    similes = ("CHECK_QUEST_STATUS", "VIEW_QUEST", "GET_QUEST_STATUS", "GET_RAIIN_QUEST")
    description = (
        "Gets the status of Raiinmaker quests and tasks with optional filtering "
        "by date, status, and type"
    )

    async def handler(
        self,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> bool:
        try:
            config = self.resolve_config(runtime)
        except ConfigurationError as e:
            self.logger.error(str(e))
            return await self.respond(callback, payload(CONFIG_MISSING_TEXT), False)

        try:
            query = build_query(message.text or "")
            self.logger.info("Listing quests", filters=query.to_params())

            async with self.client_factory(config) as client:
                page = await client.get_all_tasks(query)

            if not page.items:
                body, ok = payload(NO_QUESTS_TEXT), False
            else:
                text = format_quest_list(
                    page.items,
                    status=query.status,
                    task_type=query.type,
                    start_date=query.start_date,
                    end_date=query.end_date,
                )
                body, ok = payload(text, total=page.total), True
        except RaiinmakerApiError as e:
            self.logger.bind(api_error=e.to_dict()).error(f"Raiinmaker API Error: {e}")
            body, ok = payload(f"There was an error fetching your quests: {e}"), False
        except Exception as e:
            self.logger.exception(f"Error in {self.name} handler: {e}")
            body = payload("I apologize, but I'm having trouble fetching your quests at the moment.")
            ok = False

        return await self.respond(callback, body, ok)
