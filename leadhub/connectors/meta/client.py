"""LeadHub — Meta API Client.

Handles authentication, retry logic, rate limiting, and pagination.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from leadhub.config import settings
from leadhub.core.errors import MetaAPIError, MetaRateLimitError, is_rate_limit_error
from leadhub.core.logging import get_logger

logger = get_logger("meta.client")

META_BASE = f"{settings.meta_base_url}/{settings.meta_api_version}"
MAX_RETRIES = 3
RETRY_BASE_DELAY = 2  # seconds
RATE_LIMIT_MAX_RETRIES = 3
RATE_LIMIT_BASE_DELAY = 30  # seconds, doubled per attempt
MAX_RECORDS = 100_000


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _error_body(resp: httpx.Response) -> Dict[str, Any]:
    try:
        body = resp.json()
    except ValueError:
        return {}
    error = body.get("error") if isinstance(body, dict) else None
    return error if isinstance(error, dict) else {}


class MetaClient:
    """Async HTTP client for Meta Marketing API."""

    def __init__(
        self,
        access_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        self.access_token = access_token or settings.meta_access_token
        self.base_url = base_url or META_BASE
        self._client: Optional[httpx.AsyncClient] = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def _request(
        self,
        method: str,
        url: str,
        params: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Make a request with retry + rate-limit handling.

        Throttling is retried with 30s × 2^attempt backoff; exhausting it
        raises MetaRateLimitError. Server and connection errors get a few
        short retries. Every other error is raised immediately.
        """
        params = dict(params or {})
        if "access_token" not in params and "access_token=" not in url:
            params["access_token"] = self.access_token

        client = await self._get_client()
        attempt = 0
        throttled = 0

        while True:
            attempt += 1
            try:
                resp = await client.request(method, url, params=params)
            except httpx.RequestError as e:
                if attempt < MAX_RETRIES:
                    wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                    logger.warning(f"Request error: {e}. Retrying in {wait}s")
                    await _sleep(wait)
                    continue
                raise MetaAPIError(
                    f"Connection failed after {MAX_RETRIES} retries: {e}"
                ) from e

            if resp.status_code < 400:
                return resp.json()

            error = _error_body(resp)
            error_msg = error.get("message") or f"HTTP {resp.status_code}"
            error_code = error.get("code", 0)

            if is_rate_limit_error(error_code, resp.status_code):
                throttled += 1
                if throttled > RATE_LIMIT_MAX_RETRIES:
                    raise MetaRateLimitError(error_msg, resp.status_code, error_code)
                wait = RATE_LIMIT_BASE_DELAY * (2**throttled)
                logger.warning(
                    f"Rate limited (code {error_code}). Retrying in {wait}s "
                    f"(attempt {throttled}/{RATE_LIMIT_MAX_RETRIES})"
                )
                await _sleep(wait)
                continue

            if resp.status_code >= 500 and attempt < MAX_RETRIES:
                wait = RETRY_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(f"Server error {resp.status_code}. Retrying in {wait}s")
                await _sleep(wait)
                continue

            raise MetaAPIError(error_msg, resp.status_code, error_code)

    # ── Pagination ──

    async def iter_pages(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        page_delay: float = 0,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield the `data` list of each page, following `paging.next`."""
        current_url: Optional[str] = url
        page = 0
        while current_url:
            result = await self._request(
                "GET", current_url, params if page == 0 else None
            )
            page += 1
            yield result.get("data") or []

            current_url = (result.get("paging") or {}).get("next")
            if current_url and page_delay:
                await _sleep(page_delay)

    async def _paginated_get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        max_records: int = MAX_RECORDS,
        page_delay: float = 0,
    ) -> List[Dict[str, Any]]:
        """Fetch all pages of a paginated endpoint, up to `max_records`."""
        all_data: List[Dict[str, Any]] = []
        pages = self.iter_pages(url, params, page_delay=page_delay)
        try:
            async for data in pages:
                all_data.extend(data)
                if len(all_data) >= max_records:
                    logger.warning(
                        f"Reached {max_records} records limit for {url}, stopping pagination"
                    )
                    break
        finally:
            await pages.aclose()

        logger.info(f"Fetched {len(all_data)} records from {url}")
        return all_data

    # ── Token Validation ──

    async def validate_token(self) -> Dict[str, Any]:
        """Check if the access token is valid and return metadata."""
        url = f"{self.base_url}/debug_token"
        params = {"input_token": self.access_token}
        result = await self._request("GET", url, params)
        token_data = result.get("data", {})
        return {
            "valid": token_data.get("is_valid", False),
            "expires_at": token_data.get("expires_at", 0),
            "scopes": token_data.get("scopes", []),
            "app_id": token_data.get("app_id", ""),
        }
