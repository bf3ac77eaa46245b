"""GitLab API client and the domain managers built on it."""

from mcp_gitlab.client.base import GitLabClient
from mcp_gitlab.client.ci_cd import CiCdManager
from mcp_gitlab.client.integrations import IntegrationsManager
from mcp_gitlab.client.users_groups import UsersGroupsManager

__all__ = [
    "GitLabClient",
    "CiCdManager",
    "UsersGroupsManager",
    "IntegrationsManager",
]
