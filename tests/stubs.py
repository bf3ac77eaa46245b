"""Fake GitLab API used by the unit tests."""

import json
from typing import Any

import httpx

API_URL = "https://gitlab.example.com/api/v4"
API_PREFIX = "/api/v4"
TEST_TOKEN = "test-token-12345"


class GitLabStub:
    """Fake GitLab API for httpx.MockTransport.

    Routes are keyed by method and the raw (still URL-encoded) path below
    /api/v4. Unrouted requests answer 404 like GitLab does. Every request is
    recorded so tests can assert how many upstream calls were made.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list[dict[str, Any]]] = {}

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_code: int = 200,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        reply = {"status_code": status_code, "json": json, "text": text, "headers": headers}
        self.routes.setdefault((method, path), []).append(reply)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.raw_path.decode().split("?", 1)[0].removeprefix(API_PREFIX)
        replies = self.routes.get((request.method, path))
        if not replies:
            return httpx.Response(404, json={"message": "404 Project Not Found"})
        # the last response repeats once the queue is drained
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if reply["text"] is not None:
            return httpx.Response(reply["status_code"], text=reply["text"], headers=reply["headers"])
        return httpx.Response(reply["status_code"], json=reply["json"], headers=reply["headers"])

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)
