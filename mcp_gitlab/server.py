"""GitLab MCP server: protocol core and entry point."""

import logging
import sys
from typing import Any

import anyio
import uvicorn
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.shared.exceptions import McpError
from pydantic import AnyUrl
from starlette.applications import Starlette

from mcp_gitlab import resources
from mcp_gitlab.client import GitLabClient
from mcp_gitlab.config import ConfigurationError, Settings, load_settings
from mcp_gitlab.context import HandlerContext
from mcp_gitlab.registry import ToolRegistry
from mcp_gitlab.tools import build_registry
from mcp_gitlab.transport import SessionManager, create_app, run_stdio
from mcp_gitlab.utils.formatting import handle_api_error, unknown_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-gitlab"
SERVER_VERSION = "0.1.0"
TOOL_ERROR_CONTEXT = "Error executing GitLab operation"


class GitLabServer:
    """Protocol core: the four MCP request handlers wired to the tool registry.

    Holds no state beyond the registry and the shared handler context, so one
    instance can serve any number of sessions.
    """

    def __init__(self, context: HandlerContext, registry: ToolRegistry | None = None):
        self.context = context
        self.registry = registry or build_registry()
        self.server: Server = Server(SERVER_NAME, version=SERVER_VERSION)
        self._setup_request_handlers()

    def _setup_request_handlers(self) -> None:
        self.server.list_tools()(self.list_tools)
        self.server.list_resources()(self.list_resources)
        self.server.read_resource()(self.read_resource)
        # McpError must reach the client as a JSON-RPC error, which the SDK's
        # call_tool decorator would turn into an isError result
        self.server.request_handlers[types.CallToolRequest] = self._handle_call_tool

    async def list_tools(self) -> list[types.Tool]:
        return [definition.to_tool() for definition in self.registry.definitions()]

    async def list_resources(self) -> list[types.Resource]:
        return await resources.list_resources(self.context.client)

    async def read_resource(self, uri: AnyUrl) -> list[ReadResourceContents]:
        return await resources.read_resource(str(uri), self.context.client)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """Dispatch a tool call through the registry.

        Raises:
            McpError: Unknown tool, invalid arguments, or a classified upstream failure
        """
        handler = self.registry.resolve(name)
        if handler is None:
            raise unknown_tool(name)

        try:
            return await handler(arguments, self.context)
        except McpError:
            raise
        except Exception as e:
            raise handle_api_error(e, TOOL_ERROR_CONTEXT) from e

    async def _handle_call_tool(self, request: types.CallToolRequest) -> types.ServerResult:
        content = await self.call_tool(request.params.name, request.params.arguments)
        return types.ServerResult(types.CallToolResult(content=content, isError=False))

    async def run_stdio(self) -> None:
        await run_stdio(self.server)

    def create_app(self, settings: Settings) -> Starlette:
        session_manager = SessionManager(
            self.server,
            json_response=settings.json_response,
            idle_timeout=settings.session_idle_timeout,
        )
        return create_app(session_manager, on_shutdown=self.context.client.aclose)


def create_server(settings: Settings) -> GitLabServer:
    client = GitLabClient(settings.api_url, settings.api_token, timeout=settings.request_timeout)
    return GitLabServer(HandlerContext.from_client(client))


async def _serve_stdio(server: GitLabServer) -> None:
    try:
        await server.run_stdio()
    finally:
        await server.context.client.aclose()


def main() -> None:
    """Run the GitLab MCP server with the configured transport."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR, stream=sys.stderr)
        logger.error(str(e))
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server = create_server(settings)

    if settings.transport == "http":
        logger.info("Starting GitLab MCP server with HTTP transport...")
        logger.info(f"GitLab MCP server listening on http://{settings.http_host}:{settings.http_port}/mcp")
        logger.info(f"Health check available at http://{settings.http_host}:{settings.http_port}/health")
        uvicorn.run(
            server.create_app(settings),
            host=settings.http_host,
            port=settings.http_port,
            log_level=settings.log_level.lower(),
        )
    else:
        logger.info("Starting GitLab MCP server with stdio transport...")
        anyio.run(_serve_stdio, server)


if __name__ == "__main__":
    main()
