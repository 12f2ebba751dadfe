"""Action registry for name and simile based dispatch."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from raiinmaker_verification.agents.base_action import BaseAction, ClientFactory
from raiinmaker_verification.agents.check_status import CheckVerificationStatusAction
from raiinmaker_verification.agents.data_verification import DataVerificationAction
from raiinmaker_verification.agents.quest_status import QuestStatusAction
from raiinmaker_verification.agents.runtime import ActionMessage, AgentRuntime, HandlerCallback
from raiinmaker_verification.agents.verify_content import (
    PreVerifierFactory,
    VerifyContentAction,
)
from raiinmaker_verification.config.logging import action_context

PLUGIN_NAME = "raiinmaker"
PLUGIN_DESCRIPTION = (
    "Raiinmaker plugin for content verification through a decentralized "
    "network of human validators"
)


@dataclass
class ActionInfo:
    """Information about a registered action."""

    name: str
    similes: List[str] = field(default_factory=list)
    description: str = ""
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ActionRegistry:
    """
    Registry of plugin actions.

    Maintains a directory of actions indexed by every name they answer to,
    so a host can dispatch on either the primary name or a simile.
    """

    def __init__(self, name: str = PLUGIN_NAME, description: str = PLUGIN_DESCRIPTION):
        self.name = name
        self.description = description
        self._actions: Dict[str, BaseAction] = {}
        self._name_index: Dict[str, str] = {}  # name or simile -> primary name
        self.logger = logger.bind(component="ActionRegistry")

    def register(self, action: BaseAction) -> None:
        """
        Register an action under its name and similes.

        Raises:
            ValueError: If any of the action's names is already taken
        """
        names = action.get_capabilities()
        taken = [n for n in names if n in self._name_index]
        if taken:
            raise ValueError(f"Action names already registered: {', '.join(taken)}")

        self._actions[action.name] = action
        for alias in names:
            self._name_index[alias] = action.name

        self.logger.info(f"Action registered: {action.name}", similes=list(action.similes))

    def get(self, action_name: str) -> Optional[BaseAction]:
        primary = self._name_index.get(action_name.upper())
        return self._actions.get(primary) if primary else None

    @property
    def actions(self) -> List[BaseAction]:
        return list(self._actions.values())

    def describe(self) -> List[ActionInfo]:
        return [
            ActionInfo(name=a.name, similes=list(a.similes), description=a.description)
            for a in self._actions.values()
        ]

    async def dispatch(
        self,
        action_name: str,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> bool:
        """
        Run an action by name or simile.

        The action's validate() gate runs first; when it refuses, the
        handler is not invoked and False is returned.

        Raises:
            KeyError: If no action answers to action_name
        """
        action = self.get(action_name)
        if action is None:
            raise KeyError(f"Unknown action: {action_name}")

        if not await action.validate(runtime, message):
            self.logger.warning(f"Action {action.name} is not available, skipping")
            return False

        with action_context(action.name, room_id=message.room_id):
            return await action.handler(runtime, message, options, callback)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "total_actions": len(self._actions),
            "total_names": len(self._name_index),
            "actions": list(self._actions.keys()),
        }


def create_plugin(
    client_factory: Optional[ClientFactory] = None,
    pre_verifier_factory: Optional[PreVerifierFactory] = None,
) -> ActionRegistry:
    """Build the registry with all four Raiinmaker actions."""
    registry = ActionRegistry()
    registry.register(VerifyContentAction(client_factory, pre_verifier_factory))
    registry.register(CheckVerificationStatusAction(client_factory))
    registry.register(QuestStatusAction(client_factory))
    registry.register(DataVerificationAction(client_factory))
    return registry
