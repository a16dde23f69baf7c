"""Configuration defaults and resolution for the Fern Jest client."""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

CLIENT_NAME = "fern-jest-client"
CLIENT_VERSION = "0.2.0"
USER_AGENT = f"{CLIENT_NAME}/{CLIENT_VERSION}"

DEFAULT_PROJECT_ID = "unknown-project"
DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000

TEST_RUNS_ENDPOINT = "/api/v1/test-runs"
HEALTH_ENDPOINT = "/api/v1/health"

# Reporter environment variables
FERN_PROJECT_ID = "FERN_PROJECT_ID"
FERN_PROJECT_NAME = "FERN_PROJECT_NAME"
FERN_REPORTER_BASE_URL = "FERN_REPORTER_BASE_URL"
FERN_TIMEOUT = "FERN_TIMEOUT"
FERN_RETRIES = "FERN_RETRIES"
FERN_RETRY_DELAY = "FERN_RETRY_DELAY"
FERN_ENABLED = "FERN_ENABLED"
FERN_FAIL_ON_ERROR = "FERN_FAIL_ON_ERROR"
FERN_DEBUG = "FERN_DEBUG"
GIT_REPO_PATH = "GIT_REPO_PATH"


class ClientOptions(BaseModel):
    """Connection settings for FernApiClient."""

    base_url: str = Field(default=DEFAULT_BASE_URL, description="fern-reporter URL")
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_MS, gt=0, description="Timeout in ms"
    )
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra static request headers"
    )
    retries: int = Field(default=DEFAULT_RETRIES, ge=0, description="Max retries")
    retry_delay: int = Field(
        default=DEFAULT_RETRY_DELAY_MS, ge=0, description="Base retry delay in ms"
    )


class ReporterOptions(BaseModel):
    """Options given explicitly to the reporter.

    Every field is optional; unset fields fall back to environment variables
    and then to defaults when resolved with resolve_config.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    project_id: str | None = Field(default=None, description="Fern project ID")
    project_name: str | None = Field(default=None, description="Display name")
    base_url: str | None = Field(default=None, description="fern-reporter URL")
    timeout: int | None = Field(default=None, gt=0, description="Timeout in ms")
    retries: int | None = Field(default=None, ge=0, description="Max retries")
    retry_delay: int | None = Field(default=None, ge=0, description="Delay in ms")
    enabled: bool | None = Field(default=None, description="Enable reporting")
    fail_on_error: bool | None = Field(
        default=None, description="Re-raise delivery failures"
    )
    debug: bool | None = Field(default=None, description="Per-test debug logging")
    headers: dict[str, str] = Field(default_factory=dict)


class ReporterConfig(BaseModel):
    """Fully resolved, immutable reporter configuration."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    project_name: str
    base_url: str
    timeout: int = Field(gt=0)
    retries: int = Field(ge=0)
    retry_delay: int = Field(ge=0)
    enabled: bool
    fail_on_error: bool
    debug: bool
    headers: dict[str, str] = Field(default_factory=dict)

    def client_options(self) -> ClientOptions:
        """Build the client connection options from this configuration."""
        return ClientOptions(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=dict(self.headers),
            retries=self.retries,
            retry_delay=self.retry_delay,
        )


def get_env_var(
    environ: Mapping[str, str], key: str, default: str | None = None
) -> str | None:
    """Return an environment variable, treating empty values as unset."""
    return environ.get(key) or default


def _env_int(
    environ: Mapping[str, str], key: str, default: int, minimum: int = 0
) -> int:
    value = get_env_var(environ, key)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        number = None
    if number is None or number < minimum:
        logger.warning(f"Ignoring invalid {key}={value!r}, using {default}")
        return default
    return number


def _env_flag(environ: Mapping[str, str], key: str) -> bool:
    return (get_env_var(environ, key) or "").strip().lower() == "true"


def resolve_config(
    options: ReporterOptions | None = None,
    environ: Mapping[str, str] | None = None,
) -> ReporterConfig:
    """Resolve reporter configuration from options and environment.

    Explicit options win over environment variables, which win over
    defaults. Reporting is disabled when either the ``enabled`` option or
    ``FERN_ENABLED`` is ``false``.

    Args:
        options: Explicit reporter options
        environ: Environment mapping (default: os.environ)

    Returns:
        Resolved configuration

    """
    options = options or ReporterOptions()
    env = os.environ if environ is None else environ

    project_id = (
        options.project_id or get_env_var(env, FERN_PROJECT_ID) or DEFAULT_PROJECT_ID
    )
    project_name = (
        options.project_name or get_env_var(env, FERN_PROJECT_NAME) or project_id
    )
    env_enabled = (get_env_var(env, FERN_ENABLED) or "").strip().lower()

    return ReporterConfig(
        project_id=project_id,
        project_name=project_name,
        base_url=(
            options.base_url
            or get_env_var(env, FERN_REPORTER_BASE_URL)
            or DEFAULT_BASE_URL
        ),
        timeout=(
            options.timeout
            if options.timeout is not None
            else _env_int(env, FERN_TIMEOUT, DEFAULT_TIMEOUT_MS, minimum=1)
        ),
        retries=(
            options.retries
            if options.retries is not None
            else _env_int(env, FERN_RETRIES, DEFAULT_RETRIES)
        ),
        retry_delay=(
            options.retry_delay
            if options.retry_delay is not None
            else _env_int(env, FERN_RETRY_DELAY, DEFAULT_RETRY_DELAY_MS)
        ),
        enabled=options.enabled is not False and env_enabled != "false",
        fail_on_error=(
            options.fail_on_error
            if options.fail_on_error is not None
            else _env_flag(env, FERN_FAIL_ON_ERROR)
        ),
        debug=(
            options.debug
            if options.debug is not None
            else _env_flag(env, FERN_DEBUG)
        ),
        headers=dict(options.headers),
    )


def load_options_file(path: Path) -> ReporterOptions:
    """Load reporter options from a YAML file.

    Args:
        path: Path to the YAML options file

    Returns:
        Parsed reporter options

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If YAML is invalid or doesn't match the options schema

    """
    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ReporterOptions()

    try:
        return ReporterOptions.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid reporter options in {path}: {e}") from e
