"""Streamable-HTTP transport with explicit session bookkeeping.

One endpoint (``/mcp``) carries every session:

- POST without ``mcp-session-id`` starts a new session
- POST/GET with a known id continue that session
- DELETE with a known id closes it
- anything carrying an unknown id is answered with an "Invalid session" error

A session enters the live table only once the transport starts a successful
response to its initialize request, and leaves it exactly once, whichever of
DELETE, transport shutdown, idle eviction or server shutdown gets there first.
"""

import enum
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

INVALID_SESSION_CODE = -32000
MAX_SESSION_ID_ATTEMPTS = 5


class SessionError(RuntimeError):
    """Raised when the session table cannot be kept consistent."""


class SessionState(enum.Enum):
    INITIALIZING = "initializing"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(eq=False)
class Session:
    """One client's logical connection and the transport that owns its ordering."""

    session_id: str
    transport: StreamableHTTPServerTransport
    last_activity: float
    state: SessionState = SessionState.INITIALIZING
    in_flight: int = 0
    cancel_scope: anyio.CancelScope | None = field(default=None, repr=False)


def jsonrpc_error_response(code: int, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
    )


class SessionManager:
    """Owns the live session table and routes HTTP requests to per-session transports.

    All table mutations happen without a suspension point between the check
    and the change, so the single-threaded event loop keeps them atomic.

    Args:
        app: Low-level MCP server run once per session
        json_response: Answer POSTs with plain JSON instead of an SSE stream
        idle_timeout: Seconds without requests before a session is evicted (None disables)
        id_factory: Session ID generator (defaults to uuid4 hex)
        clock: Monotonic clock used for idle accounting
    """

    def __init__(
        self,
        app: Server,
        json_response: bool = False,
        idle_timeout: float | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.app = app
        self.json_response = json_response
        self.idle_timeout = idle_timeout
        self._id_factory = id_factory or (lambda: uuid4().hex)
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._pending: dict[str, Session] = {}
        self._task_group: TaskGroup | None = None

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        """Run the task group that hosts session tasks; closes every session on exit."""
        if self._task_group is not None:
            raise SessionError("Session manager is already running")

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            if self.idle_timeout:
                tg.start_soon(self._reap_idle_sessions)
            logger.info("Session manager started")
            try:
                yield
            finally:
                with anyio.CancelScope(shield=True):
                    for session in [*self._pending.values(), *self._sessions.values()]:
                        await self._close(session, "server shutdown")
                tg.cancel_scope.cancel()
                self._task_group = None
                logger.info("Session manager stopped")

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point for the MCP endpoint."""
        if self._task_group is None:
            raise SessionError("Session manager is not running. Use run() first.")

        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            if session_id is None and request.method == "POST":
                await self._initialize_session(scope, receive, tracking_send)
                return

            # lookup and handoff must not be separated by an await
            session = self.get_session(session_id) if session_id else None
            if session is None:
                logger.warning(f"Rejected {request.method} request for invalid session: {session_id}")
                response = jsonrpc_error_response(INVALID_SESSION_CODE, "Invalid session", 400)
                await response(scope, receive, tracking_send)
                return

            await self._dispatch(session, scope, receive, tracking_send)
        except Exception:
            logger.exception(f"Error handling {request.method} request")
            if not response_started:
                response = jsonrpc_error_response(types.INTERNAL_ERROR, "Internal server error", 500)
                await response(scope, receive, send)

    async def close_session(self, session_id: str) -> bool:
        """Close a session by ID.

        Returns:
            True if this call removed the session, False if it was already gone
        """
        session = self.get_session(session_id) or self._pending.get(session_id)
        if session is None:
            return False
        return await self._close(session, "closed by server")

    async def evict_idle_sessions(self) -> int:
        """Close sessions with no in-flight request for longer than idle_timeout.

        Returns:
            Number of sessions evicted
        """
        if not self.idle_timeout:
            return 0
        now = self._clock()
        idle = [
            session
            for session in self._sessions.values()
            if session.in_flight == 0 and now - session.last_activity > self.idle_timeout
        ]
        evicted = 0
        for session in idle:
            if await self._close(session, "idle timeout"):
                evicted += 1
        return evicted

    def _new_session_id(self) -> str:
        for _ in range(MAX_SESSION_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in self._sessions and candidate not in self._pending:
                return candidate
            logger.warning("Generated session ID collides with a live session, regenerating")
        raise SessionError(f"Could not generate a unique session ID after {MAX_SESSION_ID_ATTEMPTS} attempts")

    async def _initialize_session(self, scope: Scope, receive: Receive, send: Send) -> None:
        assert self._task_group is not None
        session_id = self._new_session_id()
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )
        session = Session(session_id=session_id, transport=transport, last_activity=self._clock())
        self._pending[session_id] = session

        async def send_and_activate(message: Message) -> None:
            # the id becomes resolvable before the client can see it
            if message["type"] == "http.response.start" and message["status"] < 400:
                self._activate(session)
            await send(message)

        try:
            await self._task_group.start(self._run_session, session)
            await self._dispatch(session, scope, receive, send_and_activate)
        finally:
            if session.state is SessionState.INITIALIZING:
                with anyio.CancelScope(shield=True):
                    await self._close(session, "initialization failed")

    def _activate(self, session: Session) -> None:
        if session.state is not SessionState.INITIALIZING:
            return
        if self._pending.get(session.session_id) is not session:
            return
        del self._pending[session.session_id]
        self._sessions[session.session_id] = session
        session.state = SessionState.ACTIVE
        logger.info(f"Session initialized: {session.session_id}")

    async def _dispatch(self, session: Session, scope: Scope, receive: Receive, send: Send) -> None:
        session.in_flight += 1
        session.last_activity = self._clock()
        try:
            await session.transport.handle_request(scope, receive, send)
        finally:
            session.in_flight -= 1
            session.last_activity = self._clock()

        if session.transport.is_terminated:
            await self._close(session, "terminated by client")

    async def _run_session(self, session: Session, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        try:
            with anyio.CancelScope() as cancel_scope:
                session.cancel_scope = cancel_scope
                async with session.transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    try:
                        await self.app.run(
                            read_stream,
                            write_stream,
                            self.app.create_initialization_options(),
                            stateless=False,
                        )
                    except Exception:
                        logger.exception(f"Session {session.session_id} crashed")
        finally:
            if self._discard(session):
                logger.info(f"Session closed: {session.session_id} (transport closed)")

    def _discard(self, session: Session) -> bool:
        """Remove the session from whichever table holds it; True only for the first caller."""
        for table in (self._sessions, self._pending):
            if table.get(session.session_id) is session:
                del table[session.session_id]
                session.state = SessionState.CLOSED
                return True
        return False

    async def _close(self, session: Session, reason: str) -> bool:
        removed = self._discard(session)
        if removed:
            logger.info(f"Session closed: {session.session_id} ({reason})")
        if not session.transport.is_terminated:
            await session.transport.terminate()
        if session.cancel_scope is not None:
            session.cancel_scope.cancel()
        return removed

    async def _reap_idle_sessions(self) -> None:
        assert self.idle_timeout
        interval = min(max(self.idle_timeout / 2, 1.0), 60.0)
        while True:
            await anyio.sleep(interval)
            evicted = await self.evict_idle_sessions()
            if evicted:
                logger.info(f"Evicted {evicted} idle session(s)")


class StreamableHTTPEndpoint:
    """ASGI app mounted at the MCP path; Starlette treats class instances as raw ASGI."""

    def __init__(self, session_manager: SessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


def create_app(
    session_manager: SessionManager,
    path: str = "/mcp",
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> Starlette:
    """Build the Starlette application serving the MCP endpoint and /health."""

    async def health(request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "transport": "streamable-http",
                "activeSessions": session_manager.active_sessions,
            }
        )

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            try:
                yield
            finally:
                if on_shutdown is not None:
                    await on_shutdown()

    return Starlette(
        routes=[
            Route(path, endpoint=StreamableHTTPEndpoint(session_manager), methods=["GET", "POST", "DELETE"]),
            Route("/health", endpoint=health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "DELETE"],
                allow_headers=["Content-Type", MCP_SESSION_ID_HEADER],
                expose_headers=[MCP_SESSION_ID_HEADER],
            )
        ],
        lifespan=lifespan,
    )
