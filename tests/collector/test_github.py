"""
Tests for the GitHub search client, driven through ``httpx.MockTransport``.
"""

from __future__ import annotations

import httpx
import pytest

from insider.collector.github import GitHubSearchClient, SearchFetcher, record_from_item
from insider.core.errors import RateLimitError, TransientUpstreamError

ITEM = {
    "full_name": "acme/alpha",
    "html_url": "https://github.com/acme/alpha",
    "description": "Alpha MCP server",
    "stargazers_count": 42,
    "updated_at": "2025-02-20T00:00:00Z",
    "language": "TypeScript",
    "license": {"spdx_id": "MIT"},
}


def _client(handler) -> GitHubSearchClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport, base_url="https://api.github.com")
    return GitHubSearchClient("tok", client=http)


class TestRecordFromItem:
    def test_maps_fields(self):
        record = record_from_item(ITEM)
        assert record.name == "acme/alpha"
        assert record.url == "https://github.com/acme/alpha"
        assert record.stars == 42
        assert record.license == "MIT"

    def test_missing_license(self):
        assert record_from_item({**ITEM, "license": None}).license is None


class TestGitHubSearchClient:
    def test_satisfies_protocol(self):
        assert isinstance(GitHubSearchClient(), SearchFetcher)

    @pytest.mark.asyncio
    async def test_request_shape_and_items(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": [ITEM, {"name": "no-url"}]})

        client = _client(handler)
        records = await client.fetch_page("topic:model-context-protocol", 2, per_page=30)

        assert [r.url for r in records] == ["https://github.com/acme/alpha"]
        request = seen[0]
        assert request.url.path == "/search/repositories"
        assert request.url.params["q"] == "topic:model-context-protocol"
        assert request.url.params["sort"] == "stars"
        assert request.url.params["page"] == "2"
        assert request.url.params["per_page"] == "30"
        assert request.headers["Authorization"] == "token tok"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [403, 429])
    async def test_rate_limit(self, status):
        client = _client(lambda request: httpx.Response(status, headers={"Retry-After": "17"}))
        with pytest.raises(RateLimitError) as exc_info:
            await client.fetch_page("q", 1)
        assert exc_info.value.retry_after == 17
        assert exc_info.value.context.http_status == status

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        client = _client(lambda request: httpx.Response(502))
        with pytest.raises(TransientUpstreamError) as exc_info:
            await client.fetch_page("q", 1)
        assert not isinstance(exc_info.value, RateLimitError)

    @pytest.mark.asyncio
    async def test_transport_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(TransientUpstreamError):
            await _client(handler).fetch_page("q", 1)
