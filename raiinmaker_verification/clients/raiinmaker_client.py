"""Async client for the Raiinmaker external verification API.

Covers the task lifecycle used by the verification actions:
- Creating BOOL verification tasks for human review
- Fetching a single task with its votes
- Listing tasks with page/date/status/type filters
- Data-accuracy validation (the only retried call)
- Campaign create/update/fetch

Both credentials travel as request headers (appId, appSecret) on every call.
Task creation and lookups are single-shot; callers re-run the action rather
than the client on transient failures.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from raiinmaker_verification.clients.errors import RaiinmakerApiError
from raiinmaker_verification.clients.schemas import (
    Campaign,
    CreateCampaignParams,
    CreateTaskOptions,
    CreateTaskRequest,
    DataVerificationResult,
    Task,
    TaskPage,
    TaskQuery,
    TaskWithVotes,
    UpdateCampaignParams,
)
from raiinmaker_verification.config.logging import get_logger
from raiinmaker_verification.config.settings import DEFAULT_BASE_URL, VerificationConfig

# 1x1 transparent PNG; the campaigns endpoint rejects requests without an image
PLACEHOLDER_IMAGE = bytes([
    0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A,
    0x00, 0x00, 0x00, 0x0D, 0x49, 0x48, 0x44, 0x52,
    0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,
    0x08, 0x06, 0x00, 0x00, 0x00, 0x1F, 0x15, 0xC4,
    0x89, 0x00, 0x00, 0x00, 0x0A, 0x49, 0x44, 0x41,
    0x54, 0x78, 0x9C, 0x63, 0x00, 0x00, 0x00, 0x02,
    0x00, 0x01, 0xE5, 0x27, 0xDE, 0xFC, 0x00, 0x00,
    0x00, 0x00, 0x49, 0x45, 0x4E, 0x44, 0xAE, 0x42,
    0x60, 0x82,
])

SEED_URL = "https://seed.raiinmaker.com"

Sleeper = Callable[[float], Awaitable[None]]


def _is_transient(exc: BaseException) -> bool:
    """Network failures and non-success HTTP responses are retried."""
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, RaiinmakerApiError) and exc.status is not None


def _validate_credentials(app_id: Any, api_key: Any) -> None:
    if not api_key or not isinstance(api_key, str):
        raise ValueError("API key is required and must be a string")
    if not app_id or not isinstance(app_id, str):
        raise ValueError("App ID is required and must be a string")


class RaiinmakerClient:
    """
    Authenticated async client for the Raiinmaker external API.

    Use as an async context manager so the underlying httpx client is
    opened and closed around a unit of work:

        async with RaiinmakerClient(app_id, api_key) as client:
            task = await client.create_verification_task("Hello world")

    Attributes:
        app_id: Raiinmaker application identifier
        base_url: API base URL
        user_id: Optional caller id, shortened into log lines
        http_client: httpx.AsyncClient, set while the context is open
        max_validate_attempts: Total attempts for data validation calls
    """

    def __init__(
        self,
        app_id: str,
        api_key: str,
        base_url: Optional[str] = None,
        user_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_validate_attempts: int = 5,
        sleep: Sleeper = asyncio.sleep,
    ):
        """
        Initialize the client. No network traffic happens here.

        Args:
            app_id: Application identifier (sent as the appId header)
            api_key: Secret key (sent as the appSecret header)
            base_url: Override for the API base URL
            user_id: Optional user id for log context
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            max_validate_attempts: Total attempts for get_data_verification
            sleep: Coroutine used for backoff delays

        Raises:
            ValueError: If either credential is missing or not a string
        """
        _validate_credentials(app_id, api_key)

        self.app_id = app_id
        self._api_key = api_key
        self.base_url = base_url or DEFAULT_BASE_URL
        self.user_id = user_id
        self.timeout = timeout
        self.max_validate_attempts = max_validate_attempts
        self._transport = transport
        self._sleep = sleep
        self.http_client: Optional[httpx.AsyncClient] = None

        log_context = {"app_id": f"{app_id[:4]}..."}
        if user_id:
            log_context["user"] = f"{user_id[:8]}..."
        self.logger = get_logger("client.raiinmaker").bind(**log_context)
        self.logger.info("Raiinmaker client created", base_url=self.base_url)

    @classmethod
    def from_config(cls, config: VerificationConfig, **kwargs: Any) -> "RaiinmakerClient":
        return cls(config.app_id, config.api_key, base_url=config.base_url, **kwargs)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "appId": self.app_id,
            "appSecret": self._api_key,
        }

    async def __aenter__(self):
        """Async context manager entry - initialize HTTP client."""
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self._transport,
        )
        self.logger.debug("HTTP client initialized for Raiinmaker API")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - close HTTP client."""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
            self.logger.debug("HTTP client closed")

    def _http(self) -> httpx.AsyncClient:
        if not self.http_client:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self.http_client

    # ── Response handling ────────────────────────────────────────────────

    @staticmethod
    def _error_from_response(response: httpx.Response, endpoint: str) -> RaiinmakerApiError:
        message = f"API error: {response.status_code} {response.reason_phrase}"
        details: Any = None
        try:
            details = response.json()
            if isinstance(details, dict) and details.get("message"):
                message = str(details["message"])
        except ValueError:
            details = response.text
            message = response.text or message
        return RaiinmakerApiError(message, status=response.status_code, endpoint=endpoint, details=details)

    def _decode(self, response: httpx.Response, endpoint: str) -> Any:
        if not response.is_success:
            raise self._error_from_response(response, endpoint)
        try:
            return response.json()
        except ValueError as e:
            raise RaiinmakerApiError(
                f"Failed to parse JSON response from {endpoint}",
                status=response.status_code,
                endpoint=endpoint,
                details=e,
            ) from e

    async def _send(self, method: str, url: str, endpoint: str, **kwargs: Any) -> Any:
        try:
            response = await self._http().request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RaiinmakerApiError(
                f"API request failed: {e}", endpoint=endpoint, details=e
            ) from e
        self.logger.debug(
            f"Raiinmaker API response status: {response.status_code}",
            endpoint=endpoint,
        )
        return self._decode(response, endpoint)

    @staticmethod
    def _envelope_data(body: Any) -> Any:
        return body.get("data") if isinstance(body, dict) else None

    @staticmethod
    def _envelope_success(body: Any) -> Any:
        return body.get("success") if isinstance(body, dict) else None

    # ── Tasks ────────────────────────────────────────────────────────────

    async def create_verification_task(
        self,
        content: str,
        options: Optional[CreateTaskOptions] = None,
    ) -> Task:
        """
        Create a BOOL task asking reviewers whether content may be posted.

        Args:
            content: Text under review (sent as the task subject)
            options: Task name, consensus votes, question, campaign id

        Returns:
            The created Task (id always set)

        Raises:
            ValueError: If content is empty
            RaiinmakerApiError: On HTTP failure, undecodable body, or a body
                without a truthy success flag and a task id
        """
        if not content:
            raise ValueError("Content to verify is required")

        endpoint = "create_verification_task"
        request = CreateTaskRequest.for_content(content, options or CreateTaskOptions())
        self.logger.info(f"Creating verification task for content: {content[:50]}...")

        body = await self._send("POST", "/task", endpoint, json=request.to_payload())

        data = self._envelope_data(body)
        if not self._envelope_success(body) or not isinstance(data, dict) or not data.get("id"):
            raise RaiinmakerApiError(
                f"Invalid response format: {json.dumps(body, default=str)}",
                endpoint=endpoint,
                details=body,
            )

        task = self._validate_model(Task, data, endpoint)
        self.logger.success(f"Created verification task with ID: {task.id}")
        return task

    async def get_task_by_id(self, task_id: str) -> TaskWithVotes:
        """
        Fetch one task with its votes.

        The returned task's votes is always a list, even when the service
        omits the field.

        Raises:
            ValueError: If task_id is empty
            RaiinmakerApiError: On HTTP failure or a malformed envelope
        """
        if not task_id:
            raise ValueError("Task ID is required")

        endpoint = "get_task_by_id"
        self.logger.info(f"Fetching task with ID: {task_id}")
        body = await self._send("GET", f"/task/{task_id}", endpoint)

        data = self._envelope_data(body)
        if not isinstance(self._envelope_success(body), bool) or not isinstance(data, dict) or not data.get("id"):
            raise RaiinmakerApiError(
                "Invalid task data returned from API", endpoint=endpoint, details=body
            )

        if not isinstance(data.get("votes"), list):
            data = {**data, "votes": []}

        return self._validate_model(TaskWithVotes, data, endpoint)

    async def get_all_tasks(self, query: Optional[TaskQuery] = None) -> TaskPage:
        """
        List tasks matching a filter.

        Limits below the API minimum page size are replaced by the default.

        Raises:
            RaiinmakerApiError: On HTTP failure, or if the success flag is not
                a boolean or data.items is not a list
        """
        endpoint = "get_all_tasks"
        params = (query or TaskQuery()).to_params()
        self.logger.info("Fetching tasks", params=params)

        body = await self._send("GET", "/task", endpoint, params=params)

        data = self._envelope_data(body)
        if not isinstance(self._envelope_success(body), bool) or not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise RaiinmakerApiError(
                "Invalid response format from API", endpoint=endpoint, details=body
            )

        return self._validate_model(
            TaskPage, {"items": data["items"], "total": data.get("total") or 0}, endpoint
        )

    # ── Data validation ──────────────────────────────────────────────────

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        self.logger.warning(
            f"Retry {retry_state.attempt_number}/{self.max_validate_attempts} "
            f"for data validation after {delay:.0f}s: {exc}"
        )

    async def _post_validate(self, content: str) -> dict[str, Any]:
        endpoint = "get_data_verification"
        http = self._http()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_validate_attempts),
            wait=wait_exponential(multiplier=1, exp_base=2),
            retry=retry_if_exception(_is_transient),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await http.post(
                        "/validate",
                        json={"content": content, "type": "text"},
                    )
                    if not response.is_success:
                        self.logger.error(f"Error response: {response.text}")
                        raise self._error_from_response(response, endpoint)
        except httpx.HTTPError as e:
            raise RaiinmakerApiError(
                f"Error getting agent validation: {e}", endpoint=endpoint, details=e
            ) from e

        result = self._decode(response, endpoint)
        if not isinstance(result, dict):
            raise RaiinmakerApiError(
                "Invalid response format from API", endpoint=endpoint, details=result
            )
        return result

    async def get_data_verification(self, content: str) -> DataVerificationResult:
        """
        Classify content through the validate endpoint.

        Non-success responses and network failures are retried up to
        max_validate_attempts in total, waiting 1, 2, 4, 8... seconds.

        Raises:
            ValueError: If content is empty
            RaiinmakerApiError: After the last failed attempt
        """
        if not content:
            raise ValueError("Validation data is required")

        self.logger.debug("Validating data with Raiinmaker API")
        result = await self._post_validate(content)
        self.logger.debug("Validation response received", classification=result.get("classification"))

        now = datetime.now()
        return DataVerificationResult(
            classification=str(result.get("classification") or result.get("status") or "unknown"),
            message=str(result.get("message") or result.get("details") or "No message provided"),
            date=now.strftime("%Y-%m-%d"),
            time=now.strftime("%H:%M:%S"),
            url=str(result.get("referenceUrl") or SEED_URL),
        )

    # ── Campaigns ────────────────────────────────────────────────────────

    @staticmethod
    def _form_fields(fields: dict[str, Any]) -> list[tuple[str, tuple]]:
        # (None, value) tuples make httpx send plain fields as multipart parts
        return [
            (key, (None, str(getattr(value, "value", value))))
            for key, value in fields.items()
            if value is not None
        ]

    def _campaign_from(self, body: Any, endpoint: str) -> Campaign:
        data = self._envelope_data(body)
        if not isinstance(data, dict):
            raise RaiinmakerApiError(
                "Invalid campaign data returned from API", endpoint=endpoint, details=body
            )
        return self._validate_model(Campaign, data, endpoint)

    async def create_campaign(self, params: CreateCampaignParams) -> Campaign:
        """
        Create a campaign. An image is always attached; when the caller has
        none, a 1x1 transparent PNG is sent instead.
        """
        if not params.name:
            raise ValueError("Campaign name and verificationType are required")

        endpoint = "create_campaign"
        self.logger.info(f"Creating campaign: {params.name}")

        files = self._form_fields({
            "name": params.name,
            "verificationType": params.verification_type,
            "description": params.description,
            "status": params.status,
        })
        if params.image:
            files.append(("image", ("image.jpg", params.image, "image/jpeg")))
        else:
            files.append(("image", ("placeholder.png", PLACEHOLDER_IMAGE, "image/png")))

        body = await self._send("POST", "/campaigns", endpoint, files=files)
        return self._campaign_from(body, endpoint)

    async def update_campaign(self, campaign_id: str, params: UpdateCampaignParams) -> Campaign:
        if not campaign_id:
            raise ValueError("Campaign ID is required")

        endpoint = "update_campaign"
        self.logger.info(f"Updating campaign: {campaign_id}")

        files = self._form_fields({
            "name": params.name,
            "description": params.description,
            "status": params.status,
        })
        if params.image:
            files.append(("image", ("image.jpg", params.image, "image/jpeg")))

        body = await self._send("PUT", f"/campaigns/{campaign_id}", endpoint, files=files)
        return self._campaign_from(body, endpoint)

    async def get_campaign(self, campaign_id: str) -> Campaign:
        if not campaign_id:
            raise ValueError("Campaign ID is required")

        endpoint = "get_campaign"
        self.logger.info(f"Fetching campaign: {campaign_id}")
        body = await self._send("GET", f"/campaigns/{campaign_id}", endpoint)
        return self._campaign_from(body, endpoint)

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _validate_model(model, data: dict, endpoint: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise RaiinmakerApiError(
                f"Unexpected payload shape from {endpoint}", endpoint=endpoint, details=e.errors()
            ) from e
