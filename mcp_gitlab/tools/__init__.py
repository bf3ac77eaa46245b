"""Static tool catalog for mcp-gitlab."""

from collections.abc import Iterable

from mcp_gitlab.registry import ToolDefinition, ToolRegistry
from mcp_gitlab.tools import ci_cd, integrations, repository, users_groups

TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    *repository.TOOLS,
    *ci_cd.TOOLS,
    *users_groups.TOOLS,
    *integrations.TOOLS,
)


def build_registry(definitions: Iterable[ToolDefinition] = TOOL_DEFINITIONS) -> ToolRegistry:
    """Register every definition and freeze the registry.

    Raises:
        ValueError: If two definitions share a name
    """
    registry = ToolRegistry()
    for definition in definitions:
        registry.register(definition.name, definition)
    return registry.freeze()


__all__ = [
    "TOOL_DEFINITIONS",
    "build_registry",
    "repository",
    "ci_cd",
    "users_groups",
    "integrations",
]
