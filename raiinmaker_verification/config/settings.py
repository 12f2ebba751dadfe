"""Application settings using Pydantic BaseSettings for environment variable management."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_BASE_URL = "https://server-staging.api.raiinmaker.com/external"

_FALSE_VALUES = {"false", "0", "no", "off", "disabled"}


class ConfigurationError(ValueError):
    """Raised when required Raiinmaker credentials are missing."""


class Settings(BaseSettings):
    """
    Process-level settings loaded from environment variables.

    These are only the fallback layer. Per-request configuration is built by
    resolve_config(), which consults the host runtime's settings first.

    Attributes:
        raiinmaker_app_id: Application identifier from the Raiinmaker seed panel
        raiinmaker_api_key: Application secret key
        raiinmaker_api_url: Base URL of the external verification API
        raiinmaker_environment: Deployment tag (informational)
        gemini_api_key: Credential for the automated pre-check (optional)
        gemini_model: Gemini model used for the pre-check
        enable_pre_verification: Feature flag for the automated pre-check
        pre_verification_fail_open: Treat pre-check failures as approval
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    raiinmaker_app_id: str = Field(default="", description="Raiinmaker application ID")
    raiinmaker_api_key: str = Field(default="", description="Raiinmaker API secret key")
    raiinmaker_api_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the Raiinmaker external API"
    )
    raiinmaker_environment: str = Field(
        default="development",
        description="Deployment environment tag (development, staging, production); informational"
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key used by the content pre-check"
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model identifier for the content pre-check"
    )
    enable_pre_verification: bool = Field(
        default=True,
        description="Run the automated pre-check before human verification"
    )
    pre_verification_fail_open: bool = Field(
        default=True,
        description="Approve content when the pre-check itself fails"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - import this throughout the application
settings = Settings()


class VerificationConfig(BaseModel):
    """Configuration resolved once per action invocation and passed by value."""

    app_id: str
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    environment: str = "development"
    precheck_api_key: Optional[str] = None
    precheck_model: str = "gemini-1.5-flash"
    enable_pre_verification: bool = True
    pre_verification_fail_open: bool = True

    model_config = {"frozen": True}

    @property
    def pre_verification_enabled(self) -> bool:
        """Pre-check runs only when switched on and a credential is present."""
        return self.enable_pre_verification and bool(self.precheck_api_key)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def parse_boolean(value: Any) -> bool:
    """
    Parse a feature flag the way host settings encode it.

    Unset or empty values mean enabled; only explicit negatives disable.
    """
    if isinstance(value, bool):
        return value
    if value is None or value == "":
        return True
    return str(value).strip().lower() not in _FALSE_VALUES


SettingLookup = Callable[[str], Any]


def resolve_config(
    get_setting: Optional[SettingLookup] = None,
    base: Optional[Settings] = None,
) -> VerificationConfig:
    """
    Build a VerificationConfig from host settings with environment fallback.

    Args:
        get_setting: Host runtime settings lookup (key -> value or None)
        base: Environment-backed settings (defaults to the module singleton)

    Returns:
        Frozen VerificationConfig

    Raises:
        ConfigurationError: If the app id or API key is missing
    """
    base = base or settings

    def lookup(key: str, fallback: Any) -> Any:
        value = get_setting(key) if get_setting else None
        if value is None or value == "":
            return fallback
        return value

    app_id = lookup("RAIINMAKER_APP_ID", base.raiinmaker_app_id)
    api_key = lookup("RAIINMAKER_API_KEY", base.raiinmaker_api_key)

    missing = []
    if not isinstance(app_id, str) or not app_id.strip():
        missing.append("RAIINMAKER_APP_ID: RAIINMAKER_APP_ID is required")
    if not isinstance(api_key, str) or not api_key.strip():
        missing.append("RAIINMAKER_API_KEY: RAIINMAKER_API_KEY is required")
    if missing:
        raise ConfigurationError(
            "Raiinmaker API configuration failed:\n" + "\n".join(missing)
        )

    return VerificationConfig(
        app_id=app_id,
        api_key=api_key,
        base_url=lookup("RAIINMAKER_API_URL", base.raiinmaker_api_url),
        environment=str(lookup("RAIINMAKER_ENVIRONMENT", base.raiinmaker_environment)),
        precheck_api_key=lookup("GEMINI_API_KEY", base.gemini_api_key),
        precheck_model=lookup("GEMINI_MODEL", base.gemini_model),
        enable_pre_verification=parse_boolean(
            lookup("ENABLE_PRE_VERIFICATION", base.enable_pre_verification)
        ),
        pre_verification_fail_open=parse_boolean(
            lookup("PRE_VERIFICATION_FAIL_OPEN", base.pre_verification_fail_open)
        ),
    )
