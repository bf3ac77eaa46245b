"""Tests for the streamable-HTTP session manager and the HTTP app."""

import json
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import anyio
import httpx
import pytest
from mcp import types
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER

from mcp_gitlab.server import GitLabServer
from mcp_gitlab.transport import SessionError, SessionManager, SessionState, create_app
from tests.stubs import GitLabStub

pytestmark = pytest.mark.anyio

BASE_HEADERS = {
    "Accept": "application/json, text/event-stream",
    "Content-Type": "application/json",
    "mcp-protocol-version": types.LATEST_PROTOCOL_VERSION,
}

INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": types.LATEST_PROTOCOL_VERSION,
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "1.0"},
    },
}

INVALID_SESSION_BODY = {"jsonrpc": "2.0", "error": {"code": -32000, "message": "Invalid session"}, "id": None}


@asynccontextmanager
async def http_client(manager: SessionManager) -> AsyncIterator[httpx.AsyncClient]:
    # ASGITransport does not send lifespan events, so the manager is run here
    async with manager.run():
        transport = httpx.ASGITransport(app=create_app(manager))
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


def rpc_message(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON-RPC reply sent either as plain JSON or as an SSE stream."""
    if not response.headers.get("content-type", "").startswith("text/event-stream"):
        return response.json()
    data = [line[len("data:") :].strip() for line in response.text.splitlines() if line.startswith("data:")]
    messages = [json.loads(item) for item in data if item]
    return messages[-1]


async def open_session(client: httpx.AsyncClient) -> str:
    response = await client.post("/mcp", json=INITIALIZE, headers=BASE_HEADERS)
    assert response.status_code == 200
    session_id = response.headers[MCP_SESSION_ID_HEADER]

    initialized = {"jsonrpc": "2.0", "method": "notifications/initialized"}
    response = await client.post("/mcp", json=initialized, headers={**BASE_HEADERS, MCP_SESSION_ID_HEADER: session_id})
    assert response.status_code == 202
    return session_id


def session_headers(session_id: str) -> dict[str, str]:
    return {**BASE_HEADERS, MCP_SESSION_ID_HEADER: session_id}


async def call_tool(client: httpx.AsyncClient, session_id: str, name: str, arguments: dict) -> dict[str, Any]:
    response = await client.post(
        "/mcp",
        json={"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {"name": name, "arguments": arguments}},
        headers=session_headers(session_id),
    )
    assert response.status_code == 200
    return rpc_message(response)


@pytest.fixture(params=[True, False], ids=["json", "sse"])
def manager(request: pytest.FixtureRequest, gitlab_server: GitLabServer) -> SessionManager:
    return SessionManager(gitlab_server.server, json_response=request.param)


def fake_clock() -> tuple[list[float], Callable[[], float]]:
    now = [1000.0]
    return now, lambda: now[0]


class TestSessionLifecycle:
    async def test_initialize_creates_session(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            response = await client.post("/mcp", json=INITIALIZE, headers=BASE_HEADERS)

            assert response.status_code == 200
            session_id = response.headers[MCP_SESSION_ID_HEADER]
            assert rpc_message(response)["result"]["serverInfo"]["name"] == "mcp-gitlab"
            assert manager.active_sessions == 1
            assert manager.get_session(session_id).state is SessionState.ACTIVE

    async def test_sessions_get_distinct_ids(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            ids = {await open_session(client) for _ in range(3)}

            assert len(ids) == 3
            assert manager.active_sessions == 3
            assert all(manager.get_session(session_id) is not None for session_id in ids)

    async def test_delete_closes_session(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)

            response = await client.delete("/mcp", headers=session_headers(session_id))

            assert response.status_code == 200
            assert manager.active_sessions == 0

            response = await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                headers=session_headers(session_id),
            )
            assert response.status_code == 400
            assert response.json() == INVALID_SESSION_BODY

    async def test_terminated_transport_leaves_table(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)
            await manager.get_session(session_id).transport.terminate()

            with anyio.fail_after(5):
                while manager.active_sessions:
                    await client.post(
                        "/mcp",
                        json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                        headers=session_headers(session_id),
                    )

            assert manager.get_session(session_id) is None

    async def test_non_initialize_post_without_header_registers_nothing(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            response = await client.post(
                "/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"}, headers=BASE_HEADERS
            )

            assert response.status_code >= 400
            assert manager.active_sessions == 0
            assert manager._pending == {}

    async def test_shutdown_closes_every_session(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            first = await open_session(client)
            second = await open_session(client)
            transports = [manager.get_session(first).transport, manager.get_session(second).transport]

        assert manager.active_sessions == 0
        assert all(t.is_terminated for t in transports)


class TestInvalidSessions:
    async def test_unknown_session_id(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            await open_session(client)

            response = await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                headers=session_headers("does-not-exist"),
            )

            assert response.status_code == 400
            assert response.json() == INVALID_SESSION_BODY
            assert manager.active_sessions == 1

    @pytest.mark.parametrize("method", ["GET", "DELETE"])
    async def test_get_and_delete_need_known_session(self, manager: SessionManager, method: str) -> None:
        async with http_client(manager) as client:
            missing = await client.request(method, "/mcp", headers=BASE_HEADERS)
            unknown = await client.request(method, "/mcp", headers=session_headers("does-not-exist"))

            assert missing.status_code == 400
            assert unknown.status_code == 400
            assert unknown.json() == INVALID_SESSION_BODY
            assert manager.active_sessions == 0

    async def test_request_before_run_is_rejected(self, manager: SessionManager) -> None:
        with pytest.raises(SessionError, match="not running"):
            await manager.handle_request({"type": "http", "method": "POST", "headers": []}, None, None)


class TestSessionIds:
    async def test_collision_is_regenerated(self, gitlab_server: GitLabServer) -> None:
        ids = iter(["alpha", "alpha", "beta"])
        manager = SessionManager(gitlab_server.server, json_response=True, id_factory=lambda: next(ids))

        async with http_client(manager) as client:
            first = await open_session(client)
            second = await open_session(client)

        assert (first, second) == ("alpha", "beta")

    async def test_persistent_collision_fails_without_mutation(self, gitlab_server: GitLabServer) -> None:
        manager = SessionManager(gitlab_server.server, json_response=True, id_factory=lambda: "fixed")

        async with http_client(manager) as client:
            await open_session(client)
            before = manager.get_session("fixed")

            response = await client.post("/mcp", json=INITIALIZE, headers=BASE_HEADERS)

            assert response.status_code == 500
            assert response.json()["error"] == {"code": types.INTERNAL_ERROR, "message": "Internal server error"}
            assert manager.active_sessions == 1
            assert manager.get_session("fixed") is before


class TestSessionRemoval:
    async def test_concurrent_close_removes_once(self, manager: SessionManager) -> None:
        results: list[bool] = []

        async def close(session_id: str) -> None:
            results.append(await manager.close_session(session_id))

        async with http_client(manager) as client:
            session_id = await open_session(client)

            async with anyio.create_task_group() as tg:
                for _ in range(5):
                    tg.start_soon(close, session_id)

        assert sorted(results) == [False, False, False, False, True]

    async def test_delete_racing_transport_termination_removes_once(
        self, manager: SessionManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="mcp_gitlab.transport.http")

        async with http_client(manager) as client:
            await open_session(client)
            session_id = await open_session(client)
            transport = manager.get_session(session_id).transport

            async def delete() -> None:
                response = await client.delete("/mcp", headers=session_headers(session_id))
                assert response.status_code in (200, 400, 404)

            async with anyio.create_task_group() as tg:
                tg.start_soon(delete)
                tg.start_soon(transport.terminate)

            with anyio.fail_after(5):
                while manager.get_session(session_id) is not None:
                    await anyio.sleep(0.01)
            # give the session task time to run its own cleanup
            await anyio.sleep(0.1)

            assert manager.active_sessions == 1
            assert manager._pending == {}

        closed = [r for r in caplog.records if r.getMessage().startswith(f"Session closed: {session_id}")]
        assert len(closed) == 1

    async def test_close_unknown_session(self, manager: SessionManager) -> None:
        async with http_client(manager):
            assert await manager.close_session("does-not-exist") is False

    async def test_idle_sessions_are_evicted(self, gitlab_server: GitLabServer) -> None:
        now, clock = fake_clock()
        manager = SessionManager(gitlab_server.server, json_response=True, idle_timeout=60, clock=clock)

        async with http_client(manager) as client:
            stale = await open_session(client)
            now[0] += 45
            fresh = await open_session(client)
            now[0] += 30

            assert await manager.evict_idle_sessions() == 1
            assert manager.active_sessions == 1
            assert manager.get_session(fresh) is not None
            assert manager.get_session(stale) is None

    async def test_busy_sessions_are_not_evicted(self, gitlab_server: GitLabServer) -> None:
        now, clock = fake_clock()
        manager = SessionManager(gitlab_server.server, json_response=True, idle_timeout=60, clock=clock)

        async with http_client(manager) as client:
            session_id = await open_session(client)
            manager.get_session(session_id).in_flight = 1
            now[0] += 600

            assert await manager.evict_idle_sessions() == 0
            manager.get_session(session_id).in_flight = 0
            assert await manager.evict_idle_sessions() == 1

    async def test_eviction_disabled_without_timeout(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            await open_session(client)

            assert await manager.evict_idle_sessions() == 0
            assert manager.active_sessions == 1


class TestHealth:
    async def test_reports_live_session_count(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            ids = [await open_session(client) for _ in range(3)]
            await client.delete("/mcp", headers=session_headers(ids[0]))

            response = await client.get("/health")

            assert response.status_code == 200
            assert response.json() == {"status": "ok", "transport": "streamable-http", "activeSessions": 2}

    async def test_cors_preflight(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            response = await client.options(
                "/mcp",
                headers={
                    "Origin": "https://client.example.com",
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "content-type, mcp-session-id",
                },
            )

            assert response.status_code == 200
            assert response.headers["access-control-allow-origin"] == "*"


class TestToolCallsOverHttp:
    async def test_tools_list(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)

            response = await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
                headers=session_headers(session_id),
            )

            names = [t["name"] for t in rpc_message(response)["result"]["tools"]]
            assert names[0] == "list_projects"
            assert "create_merge_request_discussion_simple" in names

    async def test_tool_call(self, manager: SessionManager, gitlab_stub: GitLabStub, sample_project: dict) -> None:
        gitlab_stub.add("GET", "/projects/123", json=sample_project)

        async with http_client(manager) as client:
            session_id = await open_session(client)

            message = await call_tool(client, session_id, "get_project", {"project_id": "123"})

            result = message["result"]
            assert result["isError"] is False
            assert json.loads(result["content"][0]["text"]) == sample_project

    async def test_missing_argument_is_invalid_params_error(
        self, manager: SessionManager, gitlab_stub: GitLabStub
    ) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)

            message = await call_tool(client, session_id, "get_project", {})

            assert "result" not in message
            assert message["error"]["code"] == types.INVALID_PARAMS
            assert "project_id" in message["error"]["message"]
            assert gitlab_stub.requests == []

    async def test_unknown_tool_is_invalid_request_error(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)

            message = await call_tool(client, session_id, "nope", {})

            assert message["error"]["code"] == types.INVALID_REQUEST
            assert message["error"]["message"] == "Unknown tool: nope"
            assert message["error"]["data"] == {"tool": "nope"}

    async def test_upstream_error_keeps_status_and_body(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            session_id = await open_session(client)

            message = await call_tool(client, session_id, "get_project", {"project_id": "missing"})

            error = message["error"]
            assert error["code"] == types.INTERNAL_ERROR
            assert error["message"].startswith("Error executing GitLab operation: GitLab API error 404")
            assert error["data"] == {
                "kind": "upstream_http",
                "status": 404,
                "body": {"message": "404 Project Not Found"},
            }

    async def test_sessions_are_isolated(self, manager: SessionManager) -> None:
        async with http_client(manager) as client:
            first = await open_session(client)
            second = await open_session(client)
            await client.delete("/mcp", headers=session_headers(first))

            response = await client.post(
                "/mcp",
                json={"jsonrpc": "2.0", "id": 5, "method": "tools/list"},
                headers=session_headers(second),
            )

            assert response.status_code == 200
            assert manager.active_sessions == 1
            assert manager.get_session(second) is not None
