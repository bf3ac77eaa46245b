"""Transports binding the MCP server to stdio or streamable HTTP."""

from mcp_gitlab.transport.http import (
    INVALID_SESSION_CODE,
    Session,
    SessionError,
    SessionManager,
    SessionState,
    StreamableHTTPEndpoint,
    create_app,
)
from mcp_gitlab.transport.stdio import run_stdio

__all__ = [
    "INVALID_SESSION_CODE",
    "Session",
    "SessionError",
    "SessionManager",
    "SessionState",
    "StreamableHTTPEndpoint",
    "create_app",
    "run_stdio",
]
