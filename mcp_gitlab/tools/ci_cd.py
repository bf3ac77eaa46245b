"""CI/CD tools for mcp-gitlab."""

from typing import Any, Literal

from pydantic import Field, PositiveInt

from mcp_gitlab.context import HandlerContext
from mcp_gitlab.models import NonEmptyStr, ProjectInput
from mcp_gitlab.registry import tool

PipelineStatus = Literal[
    "created",
    "waiting_for_resource",
    "preparing",
    "pending",
    "running",
    "success",
    "failed",
    "canceled",
    "skipped",
    "manual",
    "scheduled",
]


class ListPipelinesInput(ProjectInput):
    ref: str | None = Field(default=None, description="Only pipelines for this branch or tag")
    status: PipelineStatus | None = None
    per_page: PositiveInt = Field(default=20, le=100)


class PipelineInput(ProjectInput):
    pipeline_id: PositiveInt


class ListPipelineJobsInput(PipelineInput):
    scope: str | None = Field(default=None, description='Job status filter, e.g. "failed"')


class JobInput(ProjectInput):
    job_id: PositiveInt


class CreatePipelineInput(ProjectInput):
    ref: NonEmptyStr = Field(description="Branch or tag to run the pipeline for")
    variables: dict[str, str] | None = Field(default=None, description="Pipeline variables as key/value pairs")


@tool("list_pipelines", ListPipelinesInput)
async def list_pipelines(params: ListPipelinesInput, context: HandlerContext) -> Any:
    """List pipelines of a project, newest first"""
    return await context.ci_cd.list_pipelines(
        params.project_id, ref=params.ref, status=params.status, per_page=params.per_page
    )


@tool("get_pipeline", PipelineInput)
async def get_pipeline(params: PipelineInput, context: HandlerContext) -> Any:
    """Get details of a pipeline"""
    return await context.ci_cd.get_pipeline(params.project_id, params.pipeline_id)


@tool("list_pipeline_jobs", ListPipelineJobsInput)
async def list_pipeline_jobs(params: ListPipelineJobsInput, context: HandlerContext) -> Any:
    """List the jobs of a pipeline"""
    return await context.ci_cd.list_pipeline_jobs(params.project_id, params.pipeline_id, scope=params.scope)


@tool("get_job_log", JobInput)
async def get_job_log(params: JobInput, context: HandlerContext) -> Any:
    """Get the log output of a job"""
    log = await context.ci_cd.get_job_log(params.project_id, params.job_id)
    return {"job_id": params.job_id, "log": log}


@tool("create_pipeline", CreatePipelineInput)
async def create_pipeline(params: CreatePipelineInput, context: HandlerContext) -> Any:
    """Run a new pipeline for a branch or tag"""
    return await context.ci_cd.create_pipeline(params.project_id, params.ref, variables=params.variables)


@tool("list_ci_variables", ProjectInput)
async def list_ci_variables(params: ProjectInput, context: HandlerContext) -> Any:
    """List CI/CD variables of a project (metadata only, values are never returned)"""
    return await context.ci_cd.list_variables(params.project_id)


TOOLS = (
    list_pipelines,
    get_pipeline,
    list_pipeline_jobs,
    get_job_log,
    create_pipeline,
    list_ci_variables,
)
