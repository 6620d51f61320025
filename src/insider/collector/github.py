"""
GitHub repository search — the fetch capability used by the collect stage.

``fetch_page(query, page)`` returns one page of :class:`SourceRecord`
or raises a typed upstream error.  Pagination policy, delays and what to
do on failure belong to the caller (:mod:`insider.collector.stage`).

Error mapping:
    403 / 429           → RateLimitError (retry_after from headers)
    other 4xx / 5xx     → TransientUpstreamError
    transport failures  → TransientUpstreamError

Tags:
    insider, collector, github, httpx, fetch-capability
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from insider.core.errors import RateLimitError, TransientUpstreamError
from insider.core.models import SourceRecord


@runtime_checkable
class SearchFetcher(Protocol):
    """Capability: one page of a paginated search."""

    async def fetch_page(self, query: str, page: int, per_page: int = 30) -> list[SourceRecord]:
        ...


def record_from_item(item: dict[str, Any]) -> SourceRecord:
    """Map a GitHub search item to a :class:`SourceRecord`."""
    license_info = item.get("license") or {}
    return SourceRecord(
        name=item.get("full_name") or item.get("name", ""),
        url=item["html_url"],
        description=item.get("description"),
        stars=int(item.get("stargazers_count") or 0),
        updated_at=item.get("updated_at"),
        language=item.get("language"),
        license=license_info.get("spdx_id") if isinstance(license_info, dict) else None,
    )


class GitHubSearchClient:
    """Repository search over the GitHub REST API.

    Args:
        token: Optional personal access token (raises the rate limit).
        base_url: API root, overridable for GitHub Enterprise or tests.
        client: Pre-built ``httpx.AsyncClient`` (tests inject one with a
            ``MockTransport``).  When omitted, one is created and owned
            by this instance; close it with :meth:`aclose`.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = "https://api.github.com",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "mcp-insider",
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
        if client is not None:
            self._client.headers.update(headers)

    async def fetch_page(self, query: str, page: int, per_page: int = 30) -> list[SourceRecord]:
        params = {
            "q": query,
            "sort": "stars",
            "order": "desc",
            "page": page,
            "per_page": per_page,
        }
        try:
            response = await self._client.get("/search/repositories", params=params)
        except httpx.HTTPError as exc:
            raise TransientUpstreamError(f"Search request failed: {exc}", cause=exc).with_context(
                url=str(self._client.base_url),
            ) from exc

        if response.status_code in (403, 429):
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"GitHub search rate limited (HTTP {response.status_code})",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else 60,
            ).with_context(http_status=response.status_code, url=str(response.url))
        if response.is_error:
            raise TransientUpstreamError(
                f"GitHub search returned HTTP {response.status_code}"
            ).with_context(http_status=response.status_code, url=str(response.url))

        items = response.json().get("items") or []
        return [record_from_item(item) for item in items if item.get("html_url")]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GitHubSearchClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
