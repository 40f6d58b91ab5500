"""Client for the storage service's internal API."""

import logging

import httpx

logger = logging.getLogger(__name__)


class StorageServiceError(Exception):
    """Raised when the storage service answers with an error status"""

    pass


class StorageClient:
    """
    Link, unlink and delete uploaded files.

    All calls are meant to run through NonCriticalTaskRunner; they raise
    on failure and let the runner log the error.
    """

    def __init__(self, base_url: str, timeout: float, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    @staticmethod
    def _headers(tenant) -> dict:
        return {
            "x-tenant-id": str(tenant.id),
            "x-tenant-name": tenant.name,
            "x-internal-request": "true",
        }

    async def link_files(self, tenant, urls: list[str], resource_type: str, resource_id: str) -> None:
        """
        Mark uploaded files as used by a resource.

        Args:
            tenant: Owning tenant
            urls: File URLs referenced by the resource
            resource_type: e.g. "post"
            resource_id: Id of the referencing resource
        """
        if not urls:
            return
        async with self._client() as client:
            response = await client.post(
                "/internal/link-files",
                json={"urls": urls, "resourceType": resource_type, "resourceId": resource_id},
                headers=self._headers(tenant),
            )
        if response.status_code >= 400:
            raise StorageServiceError(f"link-files failed with {response.status_code}")

    async def delete_by_url(self, tenant, url: str) -> None:
        """Delete a single stored file (e.g. a replaced avatar)."""
        async with self._client() as client:
            response = await client.post(
                "/internal/delete-by-url", json={"url": url}, headers=self._headers(tenant)
            )
        if response.status_code >= 400:
            raise StorageServiceError(f"delete-by-url failed with {response.status_code}")
