"""Storage-bucket blob store for kit PDFs."""

from __future__ import annotations

import logging
from urllib.parse import quote

from kitgate.adapters.storage.base import AbstractBlobStore
from kitgate.adapters.supabase_http import SupabaseHttpClient

logger = logging.getLogger(__name__)


class SupabaseBlobStore(AbstractBlobStore):
    """Downloads objects from one private bucket with the service key."""

    def __init__(self, http: SupabaseHttpClient, *, bucket: str) -> None:
        self._http = http
        self._bucket = bucket

    async def download(self, path: str) -> bytes:
        object_path = quote(path.lstrip("/"), safe="/")
        response = await self._http.request(
            "GET",
            f"/storage/v1/object/{self._bucket}/{object_path}",
            operation="download_object",
        )
        logger.debug(
            "storage.downloaded",
            extra={"bucket": self._bucket, "path": path, "size": len(response.content)},
        )
        return response.content
