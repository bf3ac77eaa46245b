"""User and group tools for mcp-gitlab."""

from typing import Any

from pydantic import Field, PositiveInt

from mcp_gitlab.context import HandlerContext
from mcp_gitlab.models import NoArguments, NonEmptyStr, ProjectInput, ToolInput
from mcp_gitlab.registry import tool


class ListUsersInput(ToolInput):
    search: str | None = Field(default=None, description="Search by name, username or public email")
    username: str | None = None
    active: bool | None = None
    per_page: PositiveInt = Field(default=20, le=100)


class UserInput(ToolInput):
    user_id: PositiveInt


class ListGroupsInput(ToolInput):
    search: str | None = None
    owned: bool | None = None
    per_page: PositiveInt = Field(default=20, le=100)


class GroupInput(ToolInput):
    group_id: NonEmptyStr = Field(description="Group ID or full path")


class GroupMembersInput(GroupInput):
    include_inherited: bool = False


class ProjectMembersInput(ProjectInput):
    include_inherited: bool = False


@tool("get_current_user", NoArguments)
async def get_current_user(params: NoArguments, context: HandlerContext) -> Any:
    """Get the user the API token belongs to"""
    return await context.users_groups.get_current_user()


@tool("list_users", ListUsersInput)
async def list_users(params: ListUsersInput, context: HandlerContext) -> Any:
    """Search GitLab users"""
    return await context.users_groups.list_users(
        search=params.search, username=params.username, active=params.active, per_page=params.per_page
    )


@tool("get_user", UserInput)
async def get_user(params: UserInput, context: HandlerContext) -> Any:
    """Get a user by ID"""
    return await context.users_groups.get_user(params.user_id)


@tool("list_groups", ListGroupsInput)
async def list_groups(params: ListGroupsInput, context: HandlerContext) -> Any:
    """List groups visible to the token"""
    return await context.users_groups.list_groups(search=params.search, owned=params.owned, per_page=params.per_page)


@tool("get_group", GroupInput)
async def get_group(params: GroupInput, context: HandlerContext) -> Any:
    """Get details of a group"""
    return await context.users_groups.get_group(params.group_id)


@tool("list_group_members", GroupMembersInput)
async def list_group_members(params: GroupMembersInput, context: HandlerContext) -> Any:
    """List members of a group"""
    return await context.users_groups.list_group_members(params.group_id, include_inherited=params.include_inherited)


@tool("list_project_members", ProjectMembersInput)
async def list_project_members(params: ProjectMembersInput, context: HandlerContext) -> Any:
    """List members of a project"""
    return await context.users_groups.list_project_members(
        params.project_id, include_inherited=params.include_inherited
    )


TOOLS = (
    get_current_user,
    list_users,
    get_user,
    list_groups,
    get_group,
    list_group_members,
    list_project_members,
)
