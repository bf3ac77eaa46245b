"""Integration and webhook tools for mcp-gitlab."""

from typing import Any

from pydantic import Field

from mcp_gitlab.context import HandlerContext
from mcp_gitlab.models import NonEmptyStr, ProjectInput
from mcp_gitlab.registry import tool


class IntegrationInput(ProjectInput):
    integration: NonEmptyStr = Field(description='Integration slug, e.g. "slack", "jira" or "mattermost"')


@tool("list_integrations", ProjectInput)
async def list_integrations(params: ProjectInput, context: HandlerContext) -> Any:
    """List active integrations of a project"""
    return await context.integrations.list_integrations(params.project_id)


@tool("get_integration", IntegrationInput)
async def get_integration(params: IntegrationInput, context: HandlerContext) -> Any:
    """Get the settings of one project integration"""
    return await context.integrations.get_integration(params.project_id, params.integration)


@tool("list_project_hooks", ProjectInput)
async def list_project_hooks(params: ProjectInput, context: HandlerContext) -> Any:
    """List webhooks configured on a project"""
    return await context.integrations.list_project_hooks(params.project_id)


TOOLS = (
    list_integrations,
    get_integration,
    list_project_hooks,
)
