"""GitLab MCP Server - Model Context Protocol adapter for the GitLab REST API.

This package exposes GitLab operations as MCP tools and resources:
- Projects, branches and repository files
- Merge requests, notes and inline discussions
- Issues
- Pipelines, jobs and CI/CD variables
- Users, groups and memberships
- Integrations and webhooks

It serves them over stdio or the streamable-HTTP transport.
"""

from mcp_gitlab.client import CiCdManager, GitLabClient, IntegrationsManager, UsersGroupsManager
from mcp_gitlab.config import ConfigurationError, Settings, load_settings
from mcp_gitlab.context import HandlerContext
from mcp_gitlab.registry import ToolDefinition, ToolHandler, ToolRegistry, tool
from mcp_gitlab.server import GitLabServer, create_server, main
from mcp_gitlab.tools import TOOL_DEFINITIONS, build_registry
from mcp_gitlab.transport import SessionError, SessionManager, create_app
from mcp_gitlab.utils import format_response, handle_api_error

__all__ = [
    # Server
    "GitLabServer",
    "create_server",
    "main",
    # Configuration
    "Settings",
    "load_settings",
    "ConfigurationError",
    # Client
    "GitLabClient",
    "CiCdManager",
    "UsersGroupsManager",
    "IntegrationsManager",
    "HandlerContext",
    # Tools
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "TOOL_DEFINITIONS",
    "build_registry",
    "tool",
    # Transport
    "SessionManager",
    "SessionError",
    "create_app",
    # Formatting
    "format_response",
    "handle_api_error",
]
