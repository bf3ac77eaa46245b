"""CI/CD manager: pipelines, jobs and variables."""

import logging
from typing import Any

from mcp_gitlab.client.base import GitLabClient

logger = logging.getLogger(__name__)


class CiCdManager:
    """Pipeline, job and CI/CD variable operations."""

    def __init__(self, client: GitLabClient):
        self.client = client

    async def list_pipelines(
        self,
        project_id: str | int,
        ref: str | None = None,
        status: str | None = None,
        per_page: int = 20,
    ) -> list[dict[str, Any]]:
        """List pipelines for a project, newest first.

        Args:
            project_id: Project ID or path
            ref: Optional branch/tag to filter by
            status: Optional pipeline status filter (e.g. "failed")
            per_page: Number of pipelines to return (default: 20)

        Returns:
            List of pipeline objects
        """
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get(
            f"/projects/{encoded_id}/pipelines",
            params={"ref": ref, "status": status, "per_page": per_page},
        )

    async def get_pipeline(self, project_id: str | int, pipeline_id: int) -> dict[str, Any]:
        """Get a specific pipeline."""
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get(f"/projects/{encoded_id}/pipelines/{pipeline_id}")

    async def list_pipeline_jobs(
        self, project_id: str | int, pipeline_id: int, scope: str | None = None
    ) -> list[dict[str, Any]]:
        """Get jobs for a specific pipeline."""
        encoded_id = self.client.encode_project_id(project_id)
        return await self.client.get_paginated(
            f"/projects/{encoded_id}/pipelines/{pipeline_id}/jobs", params={"scope": scope}
        )

    async def get_job_log(self, project_id: str | int, job_id: int) -> str:
        """Get the raw trace of a job.

        Args:
            project_id: Project ID or path
            job_id: Job ID

        Returns:
            Raw log text as string
        """
        encoded_id = self.client.encode_project_id(project_id)
        # Job logs are returned as plain text, not JSON
        return await self.client.get_text(f"/projects/{encoded_id}/jobs/{job_id}/trace")

    async def create_pipeline(
        self, project_id: str | int, ref: str, variables: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Run a new pipeline for a branch or tag.

        Args:
            project_id: Project ID or path
            ref: Branch or tag to run the pipeline for
            variables: Optional pipeline variables as key/value pairs

        Returns:
            Created pipeline object
        """
        encoded_id = self.client.encode_project_id(project_id)
        payload: dict[str, Any] = {"ref": ref}
        if variables:
            payload["variables"] = [{"key": key, "value": value} for key, value in variables.items()]
        logger.info(f"Creating pipeline for project {project_id} on ref {ref}")
        return await self.client.post(f"/projects/{encoded_id}/pipeline", json=payload)

    @staticmethod
    def _sanitize_variable(var: dict[str, Any]) -> dict[str, Any]:
        """Remove sensitive value field from variable data."""
        return {
            "key": var.get("key"),
            "variable_type": var.get("variable_type"),
            "protected": var.get("protected"),
            "masked": var.get("masked"),
            "raw": var.get("raw"),
            "environment_scope": var.get("environment_scope"),
            "description": var.get("description"),
        }

    async def list_variables(self, project_id: str | int) -> list[dict[str, Any]]:
        """List CI/CD variables for a project (values not included for security)."""
        encoded_id = self.client.encode_project_id(project_id)
        variables = await self.client.get_paginated(f"/projects/{encoded_id}/variables")
        return [self._sanitize_variable(var) for var in variables]
