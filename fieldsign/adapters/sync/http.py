"""HTTP sync transport adapter.

Implements SyncTransportPort by PUTting each record to the remote endpoint
under its own id, which makes repeated pushes of the same record idempotent
on a compliant server. Byte fields travel base64-encoded.
"""

import logging
from typing import Any

import httpx

from fieldsign.core.codec import record_to_dict
from fieldsign.core.errors import SyncError
from fieldsign.core.models import PdfSignatureRecord, SignatureRecord
from fieldsign.core.ports import SyncTransportPort

logger = logging.getLogger(__name__)


class HttpSyncTransport(SyncTransportPort):
    """Pushes records to a REST endpoint via httpx."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the HTTP transport.

        Args:
            base_url: Root URL of the sync API (e.g., https://api.example.com/v1).
            api_key: Optional bearer token for the remote API.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport override.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._get_headers(),
            timeout=timeout_seconds,
            transport=transport,
        )

    def _get_headers(self) -> dict[str, str]:
        """Build request headers."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def __aenter__(self) -> "HttpSyncTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and clean up resources."""
        await self.client.aclose()

    async def push_signature(self, record: SignatureRecord) -> None:
        await self._put(f"/signatures/{record.id}", record_to_dict(record, "base64"))

    async def push_pdf_signature(self, record: PdfSignatureRecord) -> None:
        await self._put(
            f"/pdf-signatures/{record.id}", record_to_dict(record, "base64")
        )

    async def _put(self, path: str, payload: dict[str, Any]) -> None:
        try:
            response = await self.client.put(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SyncError(
                f"Remote rejected {path}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SyncError(f"Failed to push {path}: {e}") from e

        logger.debug(f"Remote acknowledged {path} ({response.status_code})")
