"""Abstract base class for all Raiinmaker plugin actions."""

from abc import ABC, abstractmethod
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from loguru import logger

from raiinmaker_verification.agents.runtime import ActionMessage, AgentRuntime, HandlerCallback, deliver
from raiinmaker_verification.clients.raiinmaker_client import RaiinmakerClient
from raiinmaker_verification.config.settings import (
    ConfigurationError,
    VerificationConfig,
    resolve_config,
)

ClientFactory = Callable[[VerificationConfig], RaiinmakerClient]


class BaseAction(ABC):
    """
    Abstract base class defining the common interface for all actions.

    Provides identification, logging context binding, configuration
    resolution and capability advertisement. Concrete actions implement
    handler(), which must invoke the callback at most once and never let an
    exception escape.

    Attributes:
        action_id: Unique UUID identifier for this action instance
        name: Action name the host dispatches on (e.g. VERIFY_GENERATION_CONTENT)
        similes: Alternative names the host may use
        description: Brief description of the action
        logger: Loguru logger bound with action context
        created_at: UTC timestamp of instantiation
    """

    name: str = ""
    similes: tuple[str, ...] = ()
    description: str = ""

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        """
        Initialize base action.

        Args:
            client_factory: Builds a RaiinmakerClient from a resolved config
        """
        self.action_id = str(uuid.uuid4())
        self.client_factory: ClientFactory = client_factory or RaiinmakerClient.from_config
        self.logger = logger.bind(component="action", action_id=self.action_id, action_name=self.name)
        self.created_at = datetime.now(timezone.utc)

        self.logger.debug(f"Action {self.name} initialized with ID {self.action_id}")

    def resolve_config(self, runtime: AgentRuntime) -> VerificationConfig:
        return resolve_config(runtime.get_setting)

    async def validate(self, runtime: AgentRuntime, message: ActionMessage) -> bool:
        """The action is available only when credentials resolve."""
        try:
            self.resolve_config(runtime)
            return True
        except ConfigurationError as e:
            self.logger.error(f"Validation failed: {e}")
            return False

    def get_capabilities(self) -> list[str]:
        """Names this action answers to, primary name first."""
        return [self.name, *self.similes]

    async def respond(self, callback: Optional[HandlerCallback], body: dict[str, Any], ok: bool) -> bool:
        """Deliver the result once; a failing host callback turns the run into a failure."""
        try:
            await deliver(callback, body)
        except Exception as e:
            self.logger.exception(f"Result callback failed: {e}")
            return False
        return ok

    @abstractmethod
    async def handler(
        self,
        runtime: AgentRuntime,
        message: ActionMessage,
        options: Optional[dict[str, Any]] = None,
        callback: Optional[HandlerCallback] = None,
    ) -> bool:
        """
        Execute the action.

        Args:
            runtime: Host runtime (settings, memory)
            message: Incoming message
            options: Structured options from the host, if any
            callback: Result delivery, invoked at most once

        Returns:
            True on success, False on any failure
        """
        pass
