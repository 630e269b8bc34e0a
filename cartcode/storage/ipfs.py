from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from cartcode.exceptions import InvalidIdentifierError, StoreUnavailableError

DEFAULT_API_URL = "https://ipfs.infura.io:5001"
DEFAULT_GATEWAY_URL = "https://ipfs.infura.io/ipfs/"


def _parse_add_response(body: str) -> dict[str, Any]:
    # /api/v0/add streams one JSON object per line; the last one describes the root
    lines = [line for line in body.splitlines() if line.strip()]
    if not lines:
        raise ValueError("empty response body")
    payload = json.loads(lines[-1])
    if not isinstance(payload, dict):
        raise ValueError("response is not a JSON object")
    return payload


class IpfsStore:
    """Client for the ``add`` and ``cat`` calls of an IPFS HTTP API gateway.

    Every call is a single request: no chunking, no retries, no caching.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        *,
        auth: tuple[str, str] | None = None,
        request_timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.locator_base = gateway_url if gateway_url.endswith("/") else f"{gateway_url}/"
        self.auth = auth
        self.request_timeout = request_timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            auth=self.auth,
            timeout=httpx.Timeout(self.request_timeout),
            transport=self._transport,
        )

    async def upload(self, data: bytes) -> str:
        files = {"file": ("cart", bytes(data), "application/octet-stream")}
        try:
            async with self._client() as client:
                response = await client.post("/api/v0/add", files=files, params={"pin": "true"})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"Upload to IPFS failed ({exc})", {"api_url": self.api_url}) from exc

        try:
            payload = _parse_add_response(response.text)
        except ValueError as exc:
            raise StoreUnavailableError(
                f"Upload to IPFS returned an unreadable response ({exc})", {"api_url": self.api_url}
            ) from exc

        identifier = str(payload.get("Hash") or "").strip()
        if not identifier:
            raise InvalidIdentifierError("IPFS did not return a content identifier", {"api_url": self.api_url})
        logger.debug("IPFS add returned {} ({} bytes)", identifier, payload.get("Size", "?"))
        return identifier

    async def fetch(self, identifier: str) -> bytes:
        if not identifier or not identifier.strip():
            raise InvalidIdentifierError(
                "The content identifier is empty. Probably a timeout error. Check your connection!"
            )
        try:
            async with self._client() as client:
                response = await client.post("/api/v0/cat", params={"arg": identifier.strip()})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(
                f"There was an error while downloading from IPFS: {exc}", {"identifier": identifier}
            ) from exc
        logger.debug("IPFS cat returned {} bytes for {}", len(response.content), identifier)
        return response.content


__all__ = ["IpfsStore", "DEFAULT_API_URL", "DEFAULT_GATEWAY_URL"]
