"""Shared input types for mcp-gitlab tools."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

NonEmptyStr = Annotated[str, Field(min_length=1)]

ProjectId = Annotated[
    str,
    Field(min_length=1, description='Project ID or URL-encoded path (e.g. "123" or "mygroup/myproject")'),
]

MergeRequestIid = Annotated[PositiveInt, Field(description="Merge request IID (the !number)")]


class ToolInput(BaseModel):
    """Base for tool argument models.

    Numeric IDs are accepted where a string is declared and unknown keys are
    ignored, matching what MCP clients tend to send.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True, extra="ignore")


class NoArguments(ToolInput):
    """Input for tools that take no arguments."""


class ProjectInput(ToolInput):
    project_id: ProjectId


class MergeRequestInput(ProjectInput):
    merge_request_iid: MergeRequestIid


class DiscussionPosition(BaseModel):
    """Position in a merge request diff for inline comments."""

    model_config = ConfigDict(extra="allow")

    base_sha: NonEmptyStr
    start_sha: NonEmptyStr
    head_sha: NonEmptyStr
    new_path: NonEmptyStr
    old_path: NonEmptyStr
    new_line: int | None = None
    old_line: int | None = None
