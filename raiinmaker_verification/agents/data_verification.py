"""Data-accuracy validation through the Raiinmaker validate endpoint."""

from typing import Any, Optional

from raiinmaker_verification.agents.base_action import BaseAction
from raiinmaker_verification.agents.runtime import (
    ActionMessage,
    AgentRuntime,
    HandlerCallback,
)
from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.config.settings import ConfigurationError
from raiinmaker_verification.verification.responses import (
    CONFIG_MISSING_TEXT,
    format_data_verification,
    payload,
)


def _error_payload(error: Exception) -> dict[str, Any]:
    return payload(
        "❌ There was an error during the verification process.\n\n"
        f"Error details: {error}\n\nPlease try again later or contact support.",
        proceed=False,
    )


class DataVerificationAction(BaseAction):
    """
    Ask the validate endpoint whether a piece of data is accurate.

    The whole message text is submitted. The action succeeds only when the
    classification approves the content, so hosts can use the return value
    as a go/no-go signal.
    """

    name = "GET_RAIIN_DATA_VERIFICATION"
    similes = ("VERIFY_DATA", "CHECK_DATA", "GET_RAIIN_VERIFICATION_DATA", "GET_RAIIN_VERIFICATION")
    description = "Verifies data through the Raiinmaker validation service"

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

        content = (options or {}).get("content") or message.text
        try:
            async with self.client_factory(config) as client:
                result = await client.get_data_verification(content)

            text, proceed = format_data_verification(result)
            body = payload(
                text,
                classification=result.classification,
                proceed=proceed,
                url=result.url,
            )
        except RaiinmakerApiError as e:
            self.logger.bind(api_error=e.to_dict()).error(f"Raiinmaker API Error: {e}")
            body, proceed = _error_payload(e), False
        except Exception as e:
            self.logger.exception(f"Error in {self.name} handler: {e}")
            body, proceed = _error_payload(e), False

        return await self.respond(callback, body, proceed)
