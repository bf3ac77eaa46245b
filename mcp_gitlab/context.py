"""Shared collaborators handed to every tool handler."""

from dataclasses import dataclass

from mcp_gitlab.client import CiCdManager, GitLabClient, IntegrationsManager, UsersGroupsManager


@dataclass(frozen=True)
class HandlerContext:
    """Read-only bundle of the GitLab client and the managers that wrap it.

    Built once per process and shared by all concurrent tool calls; it holds
    no per-request state.
    """

    client: GitLabClient
    ci_cd: CiCdManager
    users_groups: UsersGroupsManager
    integrations: IntegrationsManager

    @classmethod
    def from_client(cls, client: GitLabClient) -> "HandlerContext":
        return cls(
            client=client,
            ci_cd=CiCdManager(client),
            users_groups=UsersGroupsManager(client),
            integrations=IntegrationsManager(client),
        )
