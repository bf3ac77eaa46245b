"""Response envelopes and error classification for mcp-gitlab tools."""

import json
import logging
from typing import Any

import httpx
from mcp import types
from mcp.shared.exceptions import McpError

logger = logging.getLogger(__name__)

# Maximum length for error details in responses
MAX_ERROR_DETAIL_LENGTH = 500


def format_response(payload: Any) -> list[types.TextContent]:
    """Wrap a JSON-compatible payload in the MCP content envelope.

    The envelope holds a single text block with the serialized payload. Key
    order is kept, so ``json.loads`` of the text gives back an equal value.
    """
    return [types.TextContent(type="text", text=json.dumps(payload, indent=2))]


def invalid_params(message: str) -> McpError:
    """Error for a missing or malformed tool argument."""
    return McpError(types.ErrorData(code=types.INVALID_PARAMS, message=message))


def unknown_tool(name: str) -> McpError:
    """Error for a tool name that is not in the registry."""
    return McpError(
        types.ErrorData(code=types.INVALID_REQUEST, message=f"Unknown tool: {name}", data={"tool": name})
    )


def internal_error(message: str) -> McpError:
    return McpError(types.ErrorData(code=types.INTERNAL_ERROR, message=message))


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def handle_api_error(error: BaseException, context_message: str) -> McpError:
    """Classify an upstream failure as a protocol error.

    Args:
        error: Exception raised while serving a tool call
        context_message: Prefix describing the failed operation

    Returns:
        The McpError to raise. McpErrors are returned unchanged.
    """
    if isinstance(error, McpError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        detail = error.response.text[:MAX_ERROR_DETAIL_LENGTH] if error.response.text else str(error)
        return McpError(
            types.ErrorData(
                code=types.INTERNAL_ERROR,
                message=f"{context_message}: GitLab API error {status}: {detail}",
                data={"kind": "upstream_http", "status": status, "body": _response_body(error.response)},
            )
        )

    if isinstance(error, httpx.RequestError):
        return McpError(
            types.ErrorData(
                code=types.INTERNAL_ERROR,
                message=f"{context_message}: Unable to reach GitLab API: {error}",
                data={"kind": "upstream_unreachable"},
            )
        )

    logger.exception(f"Unexpected error: {context_message}", exc_info=error)
    return McpError(
        types.ErrorData(
            code=types.INTERNAL_ERROR,
            message=f"{context_message}: {error}",
            data={"kind": "internal"},
        )
    )
