"""Run configuration for the perf test.

Settings are read from environment variables (the names the Groups API team
already uses in CI) and can be overridden from the command line.  Ranges and
choices are checked when the config is built; ``PerfConfig.load()`` turns
any validation failure into a ``ConfigError`` naming the variable.  The M2M
credentials are only required to run, see ``require_credentials()``.
"""

from typing import Any, Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


DEFAULT_GROUPS_API_URL = "http://localhost:3000"
DEFAULT_MEMBERS_API_URL = "https://api.topcoder-dev.com/v5/members"
DEFAULT_INITIAL_MEMBER_SIZE = 50000

# The bulk-add endpoint and the Members API both reject more than 100 items
MAX_CHUNK_SIZE = 100
MAX_PAGE_SIZE = 100

DEFAULT_CHUNK_BUDGET_MS = 30000
DEFAULT_PAGE_DELAY = 0.1  # seconds between Members API pages
DEFAULT_TOKEN_CACHE_TIME = 86400
DEFAULT_TIMEOUT = 60

MEMBER_SOURCES = ("synthetic", "directory")
LOG_LEVELS = ("debug", "info", "warning", "error")


class PerfConfig(BaseSettings):
    """All settings for one perf run.

    Each field is read from the environment variable given as its alias and
    can also be passed by field name.

    Example:
        >>> config = PerfConfig.load(initial_member_size=1000)
        >>> config.chunk_size
        100
    """

    groups_api_url: str = Field(DEFAULT_GROUPS_API_URL, validation_alias="GROUPS_API_URL")
    members_api_url: str = Field(DEFAULT_MEMBERS_API_URL, validation_alias="MEMBERS_API_URL")
    initial_member_size: int = Field(DEFAULT_INITIAL_MEMBER_SIZE, ge=0, validation_alias="INITIAL_MEMBER_SIZE")
    member_source: Literal["synthetic", "directory"] = Field("synthetic", validation_alias="MEMBER_SOURCE")
    chunk_size: int = Field(MAX_CHUNK_SIZE, ge=1, le=MAX_CHUNK_SIZE, validation_alias="CHUNK_SIZE")
    chunk_budget_ms: int = Field(DEFAULT_CHUNK_BUDGET_MS, gt=0, validation_alias="CHUNK_BUDGET_MS")
    page_size: int = Field(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, validation_alias="MEMBERS_PAGE_SIZE")
    page_delay: float = Field(DEFAULT_PAGE_DELAY, ge=0, validation_alias="MEMBERS_PAGE_DELAY")
    auth0_url: Optional[str] = Field(None, validation_alias="AUTH0_URL")
    auth0_audience: Optional[str] = Field(None, validation_alias="AUTH0_AUDIENCE")
    auth0_client_id: Optional[str] = Field(None, validation_alias="AUTH0_CLIENT_ID")
    auth0_client_secret: Optional[str] = Field(None, validation_alias="AUTH0_CLIENT_SECRET")
    auth0_proxy_server_url: Optional[str] = Field(None, validation_alias="AUTH0_PROXY_SERVER_URL")
    token_cache_time: int = Field(DEFAULT_TOKEN_CACHE_TIME, gt=0, validation_alias="TOKEN_CACHE_TIME")
    timeout: int = Field(DEFAULT_TIMEOUT, gt=0, validation_alias="HTTP_TIMEOUT")
    log_level: Literal["debug", "info", "warning", "error"] = Field("info", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        populate_by_name=True,
        env_ignore_empty=True,
        extra="forbid",
    )

    @field_validator("log_level", "member_source", mode="before")
    @classmethod
    def _lowercase(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def load(cls, **overrides: Any) -> "PerfConfig":
        """Build a config from the environment plus non-None ``overrides``.

        Raises:
            ConfigError: a value is malformed or out of range, or an override
                names an unknown setting.
        """
        kwargs = {k: v for k, v in overrides.items() if v is not None}
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigError(_describe(exc)) from None

    def require_credentials(self) -> None:
        """Raise ``ConfigError`` if a setting needed to get a token is missing."""
        if not self.auth0_client_id:
            raise ConfigError("Missing required config: AUTH0_CLIENT_ID")
        if not self.auth0_client_secret:
            raise ConfigError("Missing required config: AUTH0_CLIENT_SECRET")
        if not self.auth0_url:
            raise ConfigError("Missing required config: AUTH0_URL")


def _describe(exc: ValidationError) -> str:
    """Render the first validation error with the env var name of its field."""
    error = exc.errors()[0]
    loc = str(error["loc"][0]) if error["loc"] else ""
    field = PerfConfig.model_fields.get(loc)
    var = field.validation_alias if field is not None and field.validation_alias else loc
    return f"Invalid value for {var}: {error['msg']} (got {error.get('input')!r})"
