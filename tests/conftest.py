"""Shared test fixtures for mcp-gitlab tests."""

import os
from collections.abc import Generator
from unittest.mock import patch

import httpx
import pytest

from mcp_gitlab.client import GitLabClient
from mcp_gitlab.context import HandlerContext
from mcp_gitlab.server import GitLabServer

from tests.stubs import API_URL, TEST_TOKEN, GitLabStub


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Set up test environment variables."""
    env = {
        "GITLAB_API_TOKEN": TEST_TOKEN,
        "GITLAB_API_URL": API_URL,
    }
    with patch.dict(os.environ, env, clear=False):
        yield env


@pytest.fixture
def gitlab_stub() -> GitLabStub:
    return GitLabStub()


@pytest.fixture
def gitlab_client(gitlab_stub: GitLabStub) -> GitLabClient:
    return GitLabClient(API_URL, TEST_TOKEN, transport=httpx.MockTransport(gitlab_stub))


@pytest.fixture
def handler_context(gitlab_client: GitLabClient) -> HandlerContext:
    return HandlerContext.from_client(gitlab_client)


@pytest.fixture
def gitlab_server(handler_context: HandlerContext) -> GitLabServer:
    return GitLabServer(handler_context)


@pytest.fixture
def sample_project() -> dict:
    """Sample GitLab project response."""
    return {
        "id": 123,
        "name": "test-project",
        "path_with_namespace": "group/test-project",
        "web_url": "https://gitlab.example.com/group/test-project",
        "default_branch": "main",
        "description": "A test project",
        "visibility": "private",
    }


@pytest.fixture
def sample_merge_request() -> dict:
    """Sample GitLab merge request response."""
    return {
        "id": 456,
        "iid": 1,
        "title": "Add new feature",
        "description": "This MR adds a new feature",
        "state": "opened",
        "source_branch": "feature-branch",
        "target_branch": "main",
        "author": {"id": 1, "username": "testuser", "name": "Test User"},
        "web_url": "https://gitlab.example.com/group/test-project/-/merge_requests/1",
        "diff_refs": {
            "base_sha": "aaa111",
            "start_sha": "bbb222",
            "head_sha": "ccc333",
        },
    }


@pytest.fixture
def sample_pipeline() -> dict:
    """Sample GitLab pipeline response."""
    return {
        "id": 789,
        "iid": 10,
        "status": "success",
        "ref": "main",
        "sha": "abc123def456",
        "web_url": "https://gitlab.example.com/group/test-project/-/pipelines/789",
    }


# Integration test fixtures


@pytest.fixture
def gitlab_token() -> str | None:
    """Get GitLab token from environment for integration tests."""
    return os.getenv("GITLAB_API_TOKEN") or os.getenv("GITLAB_TOKEN")


@pytest.fixture
def gitlab_api_url() -> str:
    """Get GitLab API URL from environment for integration tests."""
    return os.getenv("GITLAB_API_URL", "https://gitlab.com/api/v4")


@pytest.fixture
def skip_without_token(gitlab_token: str | None) -> None:
    """Skip test if no GitLab token is set."""
    if not gitlab_token:
        pytest.skip("GITLAB_API_TOKEN not set - skipping integration test")
