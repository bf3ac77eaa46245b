"""Project, branch, merge request, issue and file tools."""

import logging
from typing import Any, Literal

from pydantic import Field, PositiveInt, model_validator

from mcp_gitlab.context import HandlerContext
from mcp_gitlab.models import (
    DiscussionPosition,
    MergeRequestInput,
    NonEmptyStr,
    ProjectId,
    ProjectInput,
    ToolInput,
)
from mcp_gitlab.registry import tool
from mcp_gitlab.utils.formatting import internal_error

logger = logging.getLogger(__name__)


def _project_path(context: HandlerContext, project_id: str) -> str:
    return f"/projects/{context.client.encode_project_id(project_id)}"


def _merge_request_path(context: HandlerContext, params: MergeRequestInput) -> str:
    return f"{_project_path(context, params.project_id)}/merge_requests/{params.merge_request_iid}"


class ListProjectsInput(ToolInput):
    search: str | None = Field(default=None, description="Search projects by name")
    owned: bool = Field(default=False, description="Only projects owned by the current user")
    membership: bool = Field(default=False, description="Only projects the current user is a member of")
    per_page: PositiveInt = Field(default=20, le=100, description="Number of results per page (max 100)")


class ListBranchesInput(ProjectInput):
    search: str | None = Field(default=None, description="Filter branches by name")


class ListMergeRequestsInput(ProjectInput):
    state: Literal["opened", "closed", "locked", "merged", "all"] | None = None
    scope: Literal["created_by_me", "assigned_to_me", "all"] | None = None


class CreateNoteInput(MergeRequestInput):
    body: NonEmptyStr = Field(description="Comment text (supports Markdown)")


class CreateInternalNoteInput(CreateNoteInput):
    internal: bool = Field(default=False, description="Only visible to project members with Reporter access")


class UpdateMergeRequestInput(MergeRequestInput):
    title: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _require_change(self) -> "UpdateMergeRequestInput":
        if not self.title and not self.description:
            raise ValueError("At least one of title or description is required")
        return self


class CreateDiscussionInput(MergeRequestInput):
    body: NonEmptyStr
    position: DiscussionPosition


class CreateSimpleDiscussionInput(MergeRequestInput):
    body: NonEmptyStr
    file_path: NonEmptyStr = Field(description="Path of the file in the diff")
    line_number: PositiveInt = Field(description="Line number the comment refers to")
    line_type: Literal["new", "old"] = Field(description='"new" for added/unchanged lines, "old" for removed lines')


class ListIssuesInput(ProjectInput):
    state: Literal["opened", "closed", "all"] | None = None
    labels: str | None = Field(default=None, description="Comma-separated label names")


class GetRepositoryFileInput(ProjectInput):
    file_path: NonEmptyStr = Field(description="Path of the file in the repository")
    ref: str = Field(default="main", description="Branch, tag or commit (default: main)")


class CompareBranchesInput(ToolInput):
    project_id: ProjectId
    from_: NonEmptyStr = Field(alias="from", description="Branch, tag or commit to compare from")
    to: NonEmptyStr = Field(description="Branch, tag or commit to compare to")


@tool("list_projects", ListProjectsInput)
async def list_projects(params: ListProjectsInput, context: HandlerContext) -> Any:
    """List GitLab projects accessible to the token"""
    return await context.client.get(
        "/projects",
        params={
            "search": params.search,
            "owned": True if params.owned else None,
            "membership": True if params.membership else None,
            "per_page": params.per_page,
        },
    )


@tool("get_project", ProjectInput)
async def get_project(params: ProjectInput, context: HandlerContext) -> Any:
    """Get details of a specific project"""
    return await context.client.get(_project_path(context, params.project_id))


@tool("list_branches", ListBranchesInput)
async def list_branches(params: ListBranchesInput, context: HandlerContext) -> Any:
    """List repository branches of a project"""
    return await context.client.get(
        f"{_project_path(context, params.project_id)}/repository/branches",
        params={"search": params.search},
    )


@tool("list_merge_requests", ListMergeRequestsInput)
async def list_merge_requests(params: ListMergeRequestsInput, context: HandlerContext) -> Any:
    """List merge requests of a project"""
    return await context.client.get(
        f"{_project_path(context, params.project_id)}/merge_requests",
        params={"state": params.state, "scope": params.scope},
    )


@tool("get_merge_request", MergeRequestInput)
async def get_merge_request(params: MergeRequestInput, context: HandlerContext) -> Any:
    """Get details of a specific merge request"""
    return await context.client.get(_merge_request_path(context, params))


@tool("get_merge_request_changes", MergeRequestInput)
async def get_merge_request_changes(params: MergeRequestInput, context: HandlerContext) -> Any:
    """Get the diff of a merge request"""
    return await context.client.get(f"{_merge_request_path(context, params)}/changes")


@tool("create_merge_request_note", CreateNoteInput)
async def create_merge_request_note(params: CreateNoteInput, context: HandlerContext) -> Any:
    """Add a comment to a merge request"""
    return await context.client.post(f"{_merge_request_path(context, params)}/notes", json={"body": params.body})


@tool("create_merge_request_note_internal", CreateInternalNoteInput)
async def create_merge_request_note_internal(params: CreateInternalNoteInput, context: HandlerContext) -> Any:
    """Add a comment to a merge request, optionally as an internal note"""
    return await context.client.post(
        f"{_merge_request_path(context, params)}/notes",
        json={"body": params.body, "internal": params.internal},
    )


@tool("update_merge_request", UpdateMergeRequestInput)
async def update_merge_request(params: UpdateMergeRequestInput, context: HandlerContext) -> Any:
    """Update the title and/or description of a merge request"""
    changes = {"title": params.title, "description": params.description}
    return await context.client.put(
        _merge_request_path(context, params),
        json={key: value for key, value in changes.items() if value is not None},
    )


@tool("create_merge_request_discussion", CreateDiscussionInput)
async def create_merge_request_discussion(params: CreateDiscussionInput, context: HandlerContext) -> Any:
    """Create an inline comment on a merge request diff at an explicit position

    position must include base_sha, start_sha, head_sha, new_path and old_path,
    plus new_line and/or old_line.
    """
    position = params.position.model_dump(exclude_none=True)
    position["position_type"] = "text"
    return await context.client.post(
        f"{_merge_request_path(context, params)}/discussions",
        json={"body": params.body, "position": position},
    )


@tool("create_merge_request_discussion_simple", CreateSimpleDiscussionInput)
async def create_merge_request_discussion_simple(params: CreateSimpleDiscussionInput, context: HandlerContext) -> Any:
    """Create an inline comment on a merge request diff by file and line

    The commit SHAs are taken from the merge request's diff_refs.
    """
    merge_request = await context.client.get(_merge_request_path(context, params))
    diff_refs = merge_request.get("diff_refs")
    if not diff_refs:
        raise internal_error(
            "Could not retrieve diff_refs from merge request. The MR may not have any commits yet."
        )

    position = {
        "base_sha": diff_refs["base_sha"],
        "start_sha": diff_refs["start_sha"],
        "head_sha": diff_refs["head_sha"],
        "position_type": "text",
        "new_path": params.file_path,
        "old_path": params.file_path,
        f"{params.line_type}_line": params.line_number,
    }
    logger.debug(f"Creating discussion on {params.file_path}:{params.line_number} ({params.line_type})")
    return await context.client.post(
        f"{_merge_request_path(context, params)}/discussions",
        json={"body": params.body, "position": position},
    )


@tool("list_issues", ListIssuesInput)
async def list_issues(params: ListIssuesInput, context: HandlerContext) -> Any:
    """List issues of a project"""
    return await context.client.get(
        f"{_project_path(context, params.project_id)}/issues",
        params={"state": params.state, "labels": params.labels},
    )


@tool("get_repository_file", GetRepositoryFileInput)
async def get_repository_file(params: GetRepositoryFileInput, context: HandlerContext) -> Any:
    """Get a file from a project repository (content is base64-encoded)"""
    encoded_path = context.client.encode_project_id(params.file_path)
    return await context.client.get(
        f"{_project_path(context, params.project_id)}/repository/files/{encoded_path}",
        params={"ref": params.ref or "main"},
    )


@tool("compare_branches", CompareBranchesInput)
async def compare_branches(params: CompareBranchesInput, context: HandlerContext) -> Any:
    """Compare two branches, tags or commits"""
    return await context.client.get(
        f"{_project_path(context, params.project_id)}/repository/compare",
        params={"from": params.from_, "to": params.to},
    )


TOOLS = (
    list_projects,
    get_project,
    list_branches,
    list_merge_requests,
    get_merge_request,
    get_merge_request_changes,
    create_merge_request_note,
    list_issues,
    get_repository_file,
    compare_branches,
    update_merge_request,
    create_merge_request_note_internal,
    create_merge_request_discussion,
    create_merge_request_discussion_simple,
)
