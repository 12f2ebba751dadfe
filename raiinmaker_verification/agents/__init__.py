"""Raiinmaker plugin actions."""

from raiinmaker_verification.agents.base_action import BaseAction
from raiinmaker_verification.agents.check_status import CheckVerificationStatusAction
from raiinmaker_verification.agents.data_verification import DataVerificationAction
from raiinmaker_verification.agents.quest_status import QuestStatusAction
from raiinmaker_verification.agents.registry import ActionRegistry, create_plugin
from raiinmaker_verification.agents.runtime import ActionMessage, LocalRuntime
from raiinmaker_verification.agents.verify_content import (
    VerificationOutcome,
    VerificationState,
    VerifyContentAction,
)

__all__ = [
    "ActionMessage",
    "ActionRegistry",
    "BaseAction",
    "CheckVerificationStatusAction",
    "DataVerificationAction",
    "LocalRuntime",
    "QuestStatusAction",
    "VerificationOutcome",
    "VerificationState",
    "VerifyContentAction",
    "create_plugin",
]
