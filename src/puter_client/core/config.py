"""Client configuration for the Puter client.

``ClientConfig`` is loaded with pydantic-settings, so every field can come
from a ``PUTER_*`` environment variable. All fields are optional: an unset
field means "use the default", and the client resolves defaults on every
call rather than once at construction. Assigning a field on a live config
therefore takes effect on the client's next call.

Environment Variables:
    - PUTER_API_BASE_URL: API host (default: https://api.puter.com)
    - PUTER_API_TIMEOUT_MS: Request deadline in milliseconds (default: 120000)
    - PUTER_MAX_RETRIES: Retries after the first attempt (default: 3)
    - PUTER_RETRY_DELAY_MS: Initial backoff delay in milliseconds (default: 1000)
    - PUTER_DEBUG: Emit retry/fallback diagnostics at WARNING (default: false)
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://api.puter.com"
DEFAULT_TIMEOUT_MS = 120_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_MODEL = "gpt-5-nano"


class ClientConfig(BaseSettings):
    """Puter client configuration.

    Attributes:
        api_base_url: Base URL of the Puter API. Must start with http:// or
            https://. None uses DEFAULT_API_URL.
        api_timeout_ms: Deadline for a request, including retries for
            streaming calls. None uses DEFAULT_TIMEOUT_MS.
        max_retries: Retries after the initial attempt. None uses
            DEFAULT_MAX_RETRIES; 0 disables retrying.
        retry_delay_ms: Initial backoff delay. None uses DEFAULT_RETRY_DELAY_MS.
        debug: Log retries and catalog fallback at WARNING instead of DEBUG.
    """

    model_config = SettingsConfigDict(
        env_prefix="PUTER_",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    api_base_url: str | None = Field(default=None, description="Puter API base URL")
    api_timeout_ms: int | None = Field(default=None, ge=1, description="Request timeout (ms)")
    max_retries: int | None = Field(default=None, ge=0, description="Max retry attempts")
    retry_delay_ms: int | None = Field(default=None, ge=0, description="Initial retry delay (ms)")
    debug: bool | None = Field(default=None, description="Verbose retry/fallback diagnostics")

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str | None) -> str | None:
        """Require an http(s) URL and strip trailing slashes."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            msg = "api_base_url must start with http:// or https://"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def resolved_api_base_url(self) -> str:
        return self.api_base_url or DEFAULT_API_URL

    @property
    def resolved_timeout_ms(self) -> int:
        return self.api_timeout_ms or DEFAULT_TIMEOUT_MS

    @property
    def resolved_max_retries(self) -> int:
        return DEFAULT_MAX_RETRIES if self.max_retries is None else self.max_retries

    @property
    def resolved_retry_delay_ms(self) -> int:
        return DEFAULT_RETRY_DELAY_MS if self.retry_delay_ms is None else self.retry_delay_ms

    @property
    def resolved_debug(self) -> bool:
        return bool(self.debug)


__all__ = [
    "ClientConfig",
    "DEFAULT_API_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MODEL",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_TIMEOUT_MS",
]
