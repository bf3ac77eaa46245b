"""Utility functions for mcp-gitlab."""

from mcp_gitlab.utils.formatting import (
    MAX_ERROR_DETAIL_LENGTH,
    format_response,
    handle_api_error,
    internal_error,
    invalid_params,
    unknown_tool,
)

__all__ = [
    "MAX_ERROR_DETAIL_LENGTH",
    "format_response",
    "handle_api_error",
    "internal_error",
    "invalid_params",
    "unknown_tool",
]
