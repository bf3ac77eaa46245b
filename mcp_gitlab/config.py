"""Runtime configuration for mcp-gitlab."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://gitlab.com/api/v4"
TRANSPORTS = ("stdio", "http")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a runnable server."""


@dataclass(frozen=True)
class Settings:
    """Resolved configuration values."""

    api_token: str
    api_url: str = DEFAULT_API_URL
    transport: str = "stdio"
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    json_response: bool = False
    session_idle_timeout: float | None = 1800.0
    request_timeout: float = 30.0
    log_level: str = "INFO"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: {value}")


def _parse_number(name: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        number = kind(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got: {value}") from e
    if number < 0:
        raise ConfigurationError(f"{name} must not be negative, got: {value}")
    return number


def load_settings(env: dict[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    A ``.env`` file in the working directory is merged into ``os.environ``
    first unless an explicit mapping is given.

    Args:
        env: Mapping to read instead of ``os.environ`` (used by tests)

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If the token is missing or a value is invalid
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    token = env.get("GITLAB_API_TOKEN") or env.get("GITLAB_TOKEN")
    if not token:
        logger.error("GITLAB_API_TOKEN not set in environment variables")
        raise ConfigurationError("GITLAB_API_TOKEN environment variable is required")

    api_url = (env.get("GITLAB_API_URL") or DEFAULT_API_URL).rstrip("/")
    if not api_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"GITLAB_API_URL must start with http:// or https://, got: {api_url}")

    transport = (env.get("MCP_TRANSPORT") or "stdio").strip().lower()
    if transport not in TRANSPORTS:
        raise ConfigurationError(f"MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}, got: {transport}")

    # names accepted by both logging.basicConfig and uvicorn
    log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got: {log_level}")

    idle_timeout = _parse_number("MCP_SESSION_IDLE_TIMEOUT", env.get("MCP_SESSION_IDLE_TIMEOUT") or "1800", float)

    return Settings(
        api_token=token,
        api_url=api_url,
        transport=transport,
        http_host=env.get("MCP_HTTP_HOST") or "0.0.0.0",
        http_port=int(_parse_number("MCP_HTTP_PORT", env.get("MCP_HTTP_PORT") or "3000", int)),
        json_response=_parse_bool("MCP_HTTP_JSON_RESPONSE", env.get("MCP_HTTP_JSON_RESPONSE", "")),
        session_idle_timeout=idle_timeout or None,
        request_timeout=float(_parse_number("GITLAB_REQUEST_TIMEOUT", env.get("GITLAB_REQUEST_TIMEOUT") or "30", float)),
        log_level=log_level,
    )
