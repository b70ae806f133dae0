"""Meta client: retries, throttling backoff and pagination against a mock transport."""

import httpx
import pytest

from leadhub.connectors.meta.client import MetaClient
from leadhub.connectors.meta.endpoints import MetaEndpoints, split_date_range
from leadhub.core.errors import MetaAPIError, MetaRateLimitError

BASE = "https://graph.test/v19.0"


def _client(handler) -> MetaClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MetaClient(access_token="tok", http_client=http, base_url=BASE)


def _throttled(code: int = 17) -> httpx.Response:
    return httpx.Response(400, json={"error": {"message": "User request limit reached", "code": code}})


class TestRequest:
    @pytest.mark.asyncio
    async def test_access_token_added(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"ok": True})

        client = _client(handler)
        assert await client._request("GET", f"{BASE}/me") == {"ok": True}
        assert seen[0].params["access_token"] == "tok"
        await client.close()

    @pytest.mark.asyncio
    async def test_throttling_exhausts_into_rate_limit_error(self, sleeps):
        calls = []

        def handler(request):
            calls.append(request)
            return _throttled()

        client = _client(handler)
        with pytest.raises(MetaRateLimitError) as exc:
            await client._request("GET", f"{BASE}/me")

        assert exc.value.error_code == 17
        assert len(calls) == 4
        assert sleeps == [60, 120, 240]

    @pytest.mark.asyncio
    async def test_http_429_counts_as_throttling(self, sleeps):
        responses = [httpx.Response(429, text="slow down"), httpx.Response(200, json={"ok": 1})]

        client = _client(lambda request: responses.pop(0))
        assert await client._request("GET", f"{BASE}/me") == {"ok": 1}
        assert sleeps == [60]

    @pytest.mark.asyncio
    async def test_server_error_retried(self, sleeps):
        responses = [httpx.Response(503), httpx.Response(200, json={"ok": 1})]

        client = _client(lambda request: responses.pop(0))
        assert await client._request("GET", f"{BASE}/me") == {"ok": 1}
        assert sleeps == [2]

    @pytest.mark.asyncio
    async def test_client_error_raised_immediately(self, sleeps):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"error": {"message": "Invalid parameter", "code": 100}})

        client = _client(handler)
        with pytest.raises(MetaAPIError) as exc:
            await client._request("GET", f"{BASE}/me")

        assert not isinstance(exc.value, MetaRateLimitError)
        assert exc.value.status_code == 400
        assert str(exc.value) == "Invalid parameter"
        assert len(calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_connection_errors_give_up_after_max_retries(self, sleeps):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(MetaAPIError, match="Connection failed"):
            await client._request("GET", f"{BASE}/me")
        assert sleeps == [2, 4]


class TestPagination:
    @pytest.mark.asyncio
    async def test_follows_next_links(self):
        def handler(request):
            after = request.url.params.get("after")
            if after is None:
                return httpx.Response(
                    200,
                    json={"data": [{"id": "1"}, {"id": "2"}], "paging": {"next": f"{BASE}/items?after=p2&access_token=tok"}},
                )
            return httpx.Response(200, json={"data": [{"id": "3"}]})

        client = _client(handler)
        rows = await client._paginated_get(f"{BASE}/items", {"fields": "id"})
        assert [r["id"] for r in rows] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_never_ending_cursor_stops_at_ceiling(self):
        calls = []

        def handler(request):
            calls.append(request)
            page = [{"id": str(i)} for i in range(1000)]
            return httpx.Response(200, json={"data": page, "paging": {"next": f"{BASE}/items?after=x"}})

        client = _client(handler)
        rows = await client._paginated_get(f"{BASE}/items")
        assert len(rows) == 100_000
        assert len(calls) == 100

    @pytest.mark.asyncio
    async def test_page_delay_between_pages(self, sleeps):
        responses = [
            httpx.Response(200, json={"data": [{"id": "1"}], "paging": {"next": f"{BASE}/items?after=2"}}),
            httpx.Response(200, json={"data": [{"id": "2"}]}),
        ]
        client = _client(lambda request: responses.pop(0))
        await client._paginated_get(f"{BASE}/items", page_delay=0.3)
        assert sleeps == [0.3]


class TestValidateToken:
    @pytest.mark.asyncio
    async def test_reads_debug_token(self):
        def handler(request):
            assert request.url.params["input_token"] == "tok"
            return httpx.Response(
                200, json={"data": {"is_valid": True, "expires_at": 0, "scopes": ["ads_read"], "app_id": "9"}}
            )

        result = await _client(handler).validate_token()
        assert result == {"valid": True, "expires_at": 0, "scopes": ["ads_read"], "app_id": "9"}


class TestDateWindows:
    def test_year_splits_into_90_day_windows(self):
        windows = split_date_range("2024-01-01", "2024-12-31")
        assert len(windows) == 5
        assert windows[0] == ("2024-01-01", "2024-03-30")
        assert windows[-1][1] == "2024-12-31"

    def test_single_day(self):
        assert split_date_range("2024-05-01", "2024-05-01") == [("2024-05-01", "2024-05-01")]


class _ScriptedClient:
    """Stands in for MetaClient below the endpoint layer."""

    base_url = BASE

    def __init__(self, failing_calls=()):
        self.calls = []
        self.failing_calls = set(failing_calls)

    async def _paginated_get(self, url, params=None, max_records=100_000, page_delay=0):
        self.calls.append(params)
        if len(self.calls) in self.failing_calls:
            raise MetaRateLimitError("throttled", 400, 17)
        return [{"campaign_id": "c1", "date_start": params["time_range"]}]


class TestDailyWindows:
    @pytest.mark.asyncio
    async def test_throttled_window_is_skipped(self, sleeps):
        client = _ScriptedClient(failing_calls={2})
        endpoints = MetaEndpoints(client)

        windows = [
            (start, end)
            async for start, end, _ in endpoints.iter_daily_insight_windows(
                "111", "2024-01-01", "2024-06-30"
            )
        ]

        assert windows == [("2024-01-01", "2024-03-30"), ("2024-06-29", "2024-06-30")]
        assert len(client.calls) == 3
        assert sleeps == [2.0, 2.0]
        assert client.calls[0]["time_increment"] == "1"
