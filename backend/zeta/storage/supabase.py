"""
Supabase Blob Storage

Stores files in a Supabase Storage bucket via its REST API.
"""
import logging

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .base import BlobStorage, StorageError

logger = logging.getLogger(__name__)


class SupabaseBlobStorage(BlobStorage):
    """
    Supabase Storage implementation.

    Uploads with the service role key; URLs point at the bucket's
    public object route.
    """

    def __init__(self, base_url: str, service_role_key: str, bucket: str, timeout: float = 30.0):
        if not base_url or not service_role_key:
            raise ValueError("Supabase URL and service role key are required for Supabase storage")
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.bucket = bucket
        self.timeout = timeout

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, url: str, data: bytes, content_type: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(
                url,
                content=data,
                headers={
                    "Authorization": f"Bearer {self.service_role_key}",
                    "apikey": self.service_role_key,
                    "Content-Type": content_type,
                    "x-upsert": "false",
                },
            )

    async def upload(self, path: str, data: bytes, content_type: str = "text/plain") -> None:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{path.lstrip('/')}"
        try:
            response = await self._post(url, data, content_type)
        except httpx.HTTPError as e:
            raise StorageError(f"Supabase upload failed for {path}: {e}")

        if response.status_code >= 400:
            raise StorageError(
                f"Supabase upload rejected ({response.status_code}) for {path}: {response.text[:200]}"
            )
        logger.debug(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path.lstrip('/')}"
