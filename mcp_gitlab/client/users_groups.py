"""Users and groups manager."""

from typing import Any

from mcp_gitlab.client.base import GitLabClient


class UsersGroupsManager:
    """User, group and membership lookups."""

    def __init__(self, client: GitLabClient):
        self.client = client

    async def get_current_user(self) -> dict[str, Any]:
        """Get the user the API token belongs to."""
        return await self.client.get("/user")

    async def list_users(
        self, search: str | None = None, username: str | None = None, active: bool | None = None, per_page: int = 20
    ) -> list[dict[str, Any]]:
        """Search users by name, email or username."""
        return await self.client.get(
            "/users",
            params={"search": search, "username": username, "active": active, "per_page": per_page},
        )

    async def get_user(self, user_id: int) -> dict[str, Any]:
        return await self.client.get(f"/users/{user_id}")

    async def list_groups(
        self, search: str | None = None, owned: bool | None = None, per_page: int = 20
    ) -> list[dict[str, Any]]:
        """List groups visible to the token."""
        return await self.client.get(
            "/groups",
            params={"search": search, "owned": owned, "per_page": per_page},
        )

    async def get_group(self, group_id: str | int) -> dict[str, Any]:
        """Get a group by ID or full path."""
        encoded_id = self.client.encode_project_id(group_id)
        return await self.client.get(f"/groups/{encoded_id}", params={"with_projects": False})

    async def list_group_members(self, group_id: str | int, include_inherited: bool = False) -> list[dict[str, Any]]:
        """List members of a group.

        Args:
            group_id: Group ID or full path
            include_inherited: Include members inherited from ancestor groups

        Returns:
            List of member objects with access levels
        """
        encoded_id = self.client.encode_project_id(group_id)
        suffix = "/members/all" if include_inherited else "/members"
        return await self.client.get_paginated(f"/groups/{encoded_id}{suffix}")

    async def list_project_members(
        self, project_id: str | int, include_inherited: bool = False
    ) -> list[dict[str, Any]]:
        """List members of a project, optionally including inherited members."""
        encoded_id = self.client.encode_project_id(project_id)
        suffix = "/members/all" if include_inherited else "/members"
        return await self.client.get_paginated(f"/projects/{encoded_id}{suffix}")
