"""Author enrichment through the auth service, with a short TTL cache."""

import logging
import time

import httpx

logger = logging.getLogger(__name__)


class AuthorClient:
    """
    Fetch public author profiles from GET /api/users/{id}/public.

    Results (including misses) are cached per (tenant, author) for
    ttl_seconds. Any failure yields None; posts render without an author
    rather than failing.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float,
        ttl_seconds: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds
        self.transport = transport
        self._cache: dict[tuple[str, str], tuple[float, dict | None]] = {}

    async def get_author(self, tenant_id: str, author_id: str) -> dict | None:
        key = (tenant_id, author_id)
        cached = self._cache.get(key)
        if cached and cached[0] > time.monotonic():
            return cached[1]

        author = await self._fetch(tenant_id, author_id)
        self._cache[key] = (time.monotonic() + self.ttl_seconds, author)
        return author

    async def _fetch(self, tenant_id: str, author_id: str) -> dict | None:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.get(
                    f"/api/users/{author_id}/public",
                    headers={"x-tenant-id": tenant_id, "x-internal-request": "true"},
                )
        except httpx.HTTPError as e:
            logger.warning("Error fetching author %s: %s", author_id, e)
            return None

        if response.status_code != 200:
            logger.warning("Failed to fetch author %s: %s", author_id, response.status_code)
            return None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("id") or not data.get("name"):
            logger.warning("Malformed author payload for %s", author_id)
            return None
        return data

    def clear(self) -> None:
        self._cache.clear()
