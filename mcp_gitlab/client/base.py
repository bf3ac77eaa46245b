"""Authenticated async HTTP client for the GitLab REST API."""

import logging
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class GitLabClient:
    """Thin wrapper around httpx.AsyncClient bound to one GitLab API URL and token."""

    api_url: str
    client: httpx.AsyncClient

    def __init__(
        self,
        api_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize GitLab API client.

        Args:
            api_url: Base URL of the REST API, e.g. https://gitlab.com/api/v4
            token: GitLab personal access token sent as PRIVATE-TOKEN
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests plug in httpx.MockTransport)
        """
        if not token:
            raise ValueError("GitLab API token is required")

        self.api_url = api_url.rstrip("/")
        headers: dict[str, str] = {"PRIVATE-TOKEN": token, "Content-Type": "application/json"}
        self.client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        logger.info(f"GitLab client initialized for {self.api_url}")

    async def __aenter__(self) -> "GitLabClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def encode_project_id(project_id: str | int) -> str:
        """Encode project ID or path for use in a URL path segment."""
        return quote(str(project_id), safe="")

    @staticmethod
    def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
        # GitLab treats an empty value differently from an absent one
        if params is None:
            return None
        return {key: value for key, value in params.items() if value is not None}

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            logger.debug(f"{method} {endpoint} with params={params}")
            response = await self.client.request(method, endpoint, params=self._clean_params(params), json=json)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.error(
                f"GitLab API error for {method} {endpoint}: {e.response.status_code} - {e.response.text[:200]}"
            )
            raise
        except httpx.RequestError as e:
            logger.error(f"Network error for {method} {endpoint}: {e}")
            raise

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        return response.json()

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET request returning the decoded JSON body."""
        return self._decode(await self._request("GET", endpoint, params=params))

    async def get_text(self, endpoint: str, params: dict[str, Any] | None = None) -> str:
        """GET request for plain-text bodies such as job traces."""
        response = await self._request("GET", endpoint, params=params)
        return response.text

    async def post(self, endpoint: str, json: Any = None, params: dict[str, Any] | None = None) -> Any:
        """POST request returning the decoded JSON body."""
        return self._decode(await self._request("POST", endpoint, params=params, json=json))

    async def put(self, endpoint: str, json: Any = None, params: dict[str, Any] | None = None) -> Any:
        """PUT request returning the decoded JSON body."""
        return self._decode(await self._request("PUT", endpoint, params=params, json=json))

    async def get_paginated(
        self, endpoint: str, params: dict[str, Any] | None = None, per_page: int = 100, max_pages: int = 100
    ) -> list[Any]:
        """GET request with pagination support and safety limits.

        Args:
            endpoint: API endpoint to call
            params: Query parameters
            per_page: Results per page (max 100, GitLab limit)
            max_pages: Maximum number of pages to fetch (prevents infinite loops)

        Returns:
            List of results from all pages
        """
        params = dict(params or {})
        params["per_page"] = min(per_page, 100)  # GitLab maximum is 100
        params["page"] = 1

        all_results: list[Any] = []
        pages_fetched = 0

        while pages_fetched < max_pages:
            response = await self._request("GET", endpoint, params=params)
            results = response.json()

            if not results:
                break

            all_results.extend(results)
            pages_fetched += 1

            if not response.headers.get("x-next-page"):
                break

            params["page"] += 1

        if pages_fetched >= max_pages:
            logger.warning(f"Hit max_pages limit ({max_pages}) for {endpoint}. Results may be incomplete.")

        logger.debug(f"Fetched {len(all_results)} results from {pages_fetched} pages for {endpoint}")
        return all_results
