"""Project integrations and webhooks manager."""

from typing import Any

from mcp_gitlab.client.base import GitLabClient


class IntegrationsManager:
    """Read access to project integrations (Slack, Jira, ...) and webhooks."""

    def __init__(self, client: GitLabClient):
        self.client = client

    async def list_integrations(self, project_id: str | int) -> list[dict[str, Any]]:
        """List the integrations that are active for a project."""
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get(f"/projects/{encoded_id}/integrations")

    async def get_integration(self, project_id: str | int, integration: str) -> dict[str, Any]:
        """Get settings of one integration.

        Args:
            project_id: Project ID or path
            integration: Integration slug, e.g. "slack" or "jira"

        Returns:
            Integration settings dictionary
        """
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get(f"/projects/{encoded_id}/integrations/{integration}")

    async def list_project_hooks(self, project_id: str | int) -> list[dict[str, Any]]:
        """List webhooks configured on a project."""
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get_paginated(f"/projects/{encoded_id}/hooks")
