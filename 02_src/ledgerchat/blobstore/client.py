"""Content-addressed blob store client (IPFS HTTP API)."""

from typing import Protocol

import httpx

from ..config import DEFAULT_BLOB_API_URL, DEFAULT_GATEWAY_BASE
from ..errors import BlobStoreFailed
from ..logging_config import get_logger

logger = get_logger(__name__)


class IBlobStore(Protocol):
    """Stores attachment bytes and addresses them by content identifier."""

    async def put(self, data: bytes, file_name: str) -> str:
        """Store bytes, return the content identifier."""
        ...

    async def fetch(self, content_id: str) -> bytes:
        """Fetch bytes by content identifier."""
        ...

    def gateway_url(self, content_id: str) -> str:
        """Public URL for a content identifier."""
        ...


def gateway_url(gateway_base: str, content_id: str) -> str:
    """Build ``<gatewayBase>/<contentId>``."""
    return f"{gateway_base.rstrip('/')}/{content_id}"


class HttpBlobStore:
    """Blob store backed by an IPFS-compatible HTTP API and gateway."""

    def __init__(
        self,
        api_url: str = DEFAULT_BLOB_API_URL,
        gateway_base: str = DEFAULT_GATEWAY_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._gateway_base = gateway_base
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def gateway_base(self) -> str:
        return self._gateway_base

    async def close(self) -> None:
        await self._client.aclose()

    async def put(self, data: bytes, file_name: str) -> str:
        """Upload bytes via /api/v0/add and return the content hash."""
        try:
            response = await self._client.post(
                f"{self._api_url}/api/v0/add",
                files={"file": (file_name, data)},
            )
            response.raise_for_status()
            body = response.json()
            content_id = body.get("Hash") if isinstance(body, dict) else None
        except httpx.HTTPError as e:
            raise BlobStoreFailed(f"Upload of {file_name} failed: {e}") from e
        except ValueError as e:
            raise BlobStoreFailed(f"Upload of {file_name} returned invalid JSON") from e

        if not content_id:
            raise BlobStoreFailed(f"Upload of {file_name} returned no content id")

        logger.info("Stored %s (%d bytes) as %s", file_name, len(data), content_id)
        return content_id

    async def fetch(self, content_id: str) -> bytes:
        """Download bytes from the gateway."""
        try:
            response = await self._client.get(self.gateway_url(content_id))
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BlobStoreFailed(f"Fetch of {content_id} failed: {e}") from e
        return response.content

    def gateway_url(self, content_id: str) -> str:
        return gateway_url(self._gateway_base, content_id)
