"""Status check: resolve a task id, fetch the task, reduce it to a status."""

from typing import Any, Optional

from raiinmaker_verification.agents.base_action import BaseAction
from raiinmaker_verification.agents.runtime import (
    ActionMessage,
    AgentRuntime,
    HandlerCallback,
)
from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.config.settings import ConfigurationError
from raiinmaker_verification.utils.content_extractor import (
    extract_task_id,
    extract_task_id_from_memory_text,
)
from raiinmaker_verification.verification.responses import CONFIG_MISSING_TEXT, payload
from raiinmaker_verification.verification.status import ERROR_STATUS, reduce_task_status

RECENT_MEMORY_COUNT = 10

NO_TASK_ID_TEXT = (
    "I couldn't find a task ID to check. Please provide the task ID of the "
    "verification you want to check."
)


class CheckVerificationStatusAction(BaseAction):
    """Check a verification task by id, recalling the id from memory if needed."""

    name = "CHECK_VERIFICATION_STATUS"
    similes = ("GET_VERIFICATION_STATUS", "CHECK_CONTENT_STATUS", "VERIFY_STATUS", "CHECK_TASK_STATUS")
    description = "Checks the status of a content verification task in the Raiinmaker app"

    async def resolve_task_id(
        self,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Explicit option, then the message text, then recent room memory.

        Memory entries are scanned newest first. For each entry the recorded
        metadata taskId wins over patterns found in the entry's text.
        """
        explicit = (options or {}).get("task_id") or (options or {}).get("taskId")
        if explicit:
            return str(explicit)

        task_id = extract_task_id(message.text or "")
        if task_id:
            return task_id

        memories = await runtime.memory.get_memories(message.room_id, count=RECENT_MEMORY_COUNT)
        for memory in memories:
            if memory.task_id:
                return memory.task_id
            task_id = extract_task_id_from_memory_text(memory.text)
            if task_id:
                return task_id
        return None

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
            task_id = await self.resolve_task_id(runtime, message, options)
            if not task_id:
                self.logger.info("No task id in message or recent memory")
                return await self.respond(callback, payload(NO_TASK_ID_TEXT), False)

            self.logger.info(f"Checking verification status for task {task_id}")
            async with self.client_factory(config) as client:
                task = await client.get_task_by_id(task_id)

            result = reduce_task_status(task)
            body = payload(
                result.formatted_text,
                verificationResult=result.to_payload(),
                status=result.status,
                answer=result.answer,
                taskId=result.task_id,
            )
            ok = result.status != ERROR_STATUS
        except RaiinmakerApiError as e:
            self.logger.bind(api_error=e.to_dict()).error(f"Raiinmaker API Error: {e}")
            body = {
                "text": f"There was an error checking the verification status: {e}",
                "status": ERROR_STATUS,
                "answer": None,
            }
            ok = False
        except Exception as e:
            self.logger.exception(f"Error in {self.name} handler: {e}")
            body = {
                "text": "I apologize, but I'm having trouble checking the verification status at the moment.",
                "status": ERROR_STATUS,
                "answer": None,
            }
            ok = False

        return await self.respond(callback, body, ok)
