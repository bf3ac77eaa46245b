"""Readable GitLab resources for mcp-gitlab.

URIs use the ``gitlab://`` scheme:

- ``gitlab://projects`` - projects the token is a member of
- ``gitlab://user`` - the authenticated user
- ``gitlab://projects/{project_id}`` - a single project
- ``gitlab://projects/{project_id}/merge_requests`` - open merge requests
- ``gitlab://projects/{project_id}/issues`` - open issues
- ``gitlab://projects/{project_id}/branches`` - repository branches

Project paths must be URL-encoded (``mygroup%2Fmyproject``).
"""

import json
import logging
from typing import Any
from urllib.parse import unquote

from mcp import types
from mcp.server.lowlevel.helper_types import ReadResourceContents

from mcp_gitlab.client import GitLabClient
from mcp_gitlab.utils.formatting import handle_api_error, invalid_params

logger = logging.getLogger(__name__)

SCHEME = "gitlab://"
JSON_MIME_TYPE = "application/json"

STATIC_RESOURCES = (
    types.Resource(
        uri="gitlab://projects",
        name="GitLab projects",
        description="Projects the authenticated user is a member of",
        mimeType=JSON_MIME_TYPE,
    ),
    types.Resource(
        uri="gitlab://user",
        name="Current GitLab user",
        description="The user the API token belongs to",
        mimeType=JSON_MIME_TYPE,
    ),
)

PROJECT_COLLECTIONS = {
    "merge_requests": ("merge_requests", {"state": "opened"}),
    "issues": ("issues", {"state": "opened"}),
    "branches": ("repository/branches", None),
}


async def list_resources(client: GitLabClient) -> list[types.Resource]:
    """List the static resources; per-project URIs are addressable but not enumerated."""
    return list(STATIC_RESOURCES)


async def _fetch(uri: str, client: GitLabClient) -> Any:
    if not uri.startswith(SCHEME):
        raise invalid_params(f"Unsupported resource URI: {uri}")

    parts = [part for part in uri[len(SCHEME) :].split("/") if part]
    if parts == ["user"]:
        return await client.get("/user")
    if parts == ["projects"]:
        return await client.get("/projects", params={"membership": True, "per_page": 20})
    if len(parts) in (2, 3) and parts[0] == "projects":
        encoded_id = client.encode_project_id(unquote(parts[1]))
        if len(parts) == 2:
            return await client.get(f"/projects/{encoded_id}")
        if parts[2] in PROJECT_COLLECTIONS:
            endpoint, params = PROJECT_COLLECTIONS[parts[2]]
            return await client.get(f"/projects/{encoded_id}/{endpoint}", params=params)

    raise invalid_params(f"Unknown resource: {uri}")


async def read_resource(uri: str, client: GitLabClient) -> list[ReadResourceContents]:
    """Read a gitlab:// resource as JSON text.

    Raises:
        McpError: For unknown URIs and for GitLab failures
    """
    try:
        payload = await _fetch(uri, client)
    except Exception as e:
        raise handle_api_error(e, f"Error reading resource {uri}") from e
    return [ReadResourceContents(content=json.dumps(payload, indent=2), mime_type=JSON_MIME_TYPE)]
