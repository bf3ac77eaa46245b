"""Stdio transport: one implicit session bound to the process's stdin/stdout."""

import logging

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

logger = logging.getLogger(__name__)


async def run_stdio(server: Server) -> None:
    """Serve a single client over stdin/stdout until the stream closes."""
    async with stdio_server() as (read_stream, write_stream):
        logger.info("GitLab MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())
