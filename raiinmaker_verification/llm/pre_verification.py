"""Automated content pre-check against a policy checklist.

Before content goes to human reviewers, an LLM can judge it against a short
checklist. When the check passes, the verification flow approves the content
locally and no remote task is created.

Failure policy: when the pre-check itself fails (network error, malformed
completion, missing credential) the result follows
VerificationConfig.pre_verification_fail_open. Fail-open returns an approving
result; fail-closed returns a failing one, which routes the content to human
verification.
"""

import json
import re
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from raiinmaker_verification.config.checklist import DEFAULT_CHECKLIST
from raiinmaker_verification.config.logging import get_logger
from raiinmaker_verification.config.settings import VerificationConfig

PROMPT_TEMPLATE = """
You are a content verification assistant. Your job is to check if the content below follows all the guidelines in the checklist.
Respond in JSON format with "passes" (boolean), "failedChecks" (array of failed checks), and "suggestedFix" (string with proposed edits if any).

CONTENT TO VERIFY:
\"\"\"
{content}
\"\"\"

CHECKLIST:
{checklist}

RESPOND ONLY WITH JSON:
"""


class PreVerificationResult(BaseModel):
    passes: bool
    failed_checks: list[str] = Field(default_factory=list)
    suggested_fix: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def approving(cls) -> "PreVerificationResult":
        return cls(passes=True, failed_checks=[])


class JsonCompletionClient(Protocol):
    async def generate_json(self, prompt: str, temperature: float = 0.1) -> str: ...


def build_prompt(content: str, checklist: list[str]) -> str:
    numbered = "\n".join(f"{index}. {item}" for index, item in enumerate(checklist, start=1))
    return PROMPT_TEMPLATE.format(content=content, checklist=numbered)


def parse_completion(text: str) -> PreVerificationResult:
    """
    Parse the model's JSON answer.

    Tolerates markdown code fences and surrounding prose.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    text = text.strip()
    fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if fenced:
        text = fenced.group(1).strip()
    obj = re.search(r"\{[\s\S]*\}", text)
    if obj:
        text = obj.group(0)

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Pre-verification response is not a JSON object")
    return PreVerificationResult.model_validate(data)


class ContentPreVerifier:
    """
    Runs the checklist pre-check through a JSON completion client.

    Attributes:
        config: Per-request configuration (credential, flags, policy)
    """

    def __init__(
        self,
        config: VerificationConfig,
        client: Optional[JsonCompletionClient] = None,
    ):
        self.config = config
        self._client = client
        self.logger = get_logger("llm.pre_verification")

    def _get_client(self) -> JsonCompletionClient:
        if self._client is None:
            from raiinmaker_verification.llm.gemini_client import GeminiClient

            self._client = GeminiClient(
                self.config.precheck_api_key, model_name=self.config.precheck_model
            )
        return self._client

    def _on_failure(self, error: Exception) -> PreVerificationResult:
        if self.config.pre_verification_fail_open:
            self.logger.error(f"Error in content pre-verification, failing open: {error}")
            return PreVerificationResult.approving()
        self.logger.error(f"Error in content pre-verification, failing closed: {error}")
        return PreVerificationResult(
            passes=False,
            failed_checks=[f"Pre-verification unavailable: {error}"],
        )

    async def pre_verify(
        self,
        content: str,
        checklist: Optional[list[str]] = None,
    ) -> PreVerificationResult:
        """
        Judge content against a checklist. Never raises.

        Args:
            content: Text to check
            checklist: Policy statements (defaults to DEFAULT_CHECKLIST)

        Returns:
            PreVerificationResult. Always approving when the pre-check is
            disabled or has no credential.
        """
        if not self.config.enable_pre_verification:
            self.logger.info("Content pre-verification is disabled, skipping check")
            return PreVerificationResult.approving()

        try:
            if not self.config.precheck_api_key:
                raise ValueError("Pre-verification API key not configured")

            prompt = build_prompt(content, checklist or DEFAULT_CHECKLIST)
            completion = await self._get_client().generate_json(prompt, temperature=0.1)
            result = parse_completion(completion)
        except Exception as e:
            return self._on_failure(e)

        if self.config.is_development:
            self.logger.debug("Pre-verification response", result=result.model_dump())

        self.logger.info(f"Pre-verification result: {'PASSED' if result.passes else 'FAILED'}")
        if not result.passes:
            self.logger.info(f"Failed checks: {', '.join(result.failed_checks)}")
        return result


def checklist_from_setting(value: Any) -> Optional[list[str]]:
    """Accept a host-provided checklist as a list or a JSON-encoded list."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if isinstance(value, list) and all(isinstance(item, str) for item in value) and value:
        return value
    return None
