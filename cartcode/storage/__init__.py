"""Content-addressed storage (IPFS HTTP API or local directory)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cartcode.settings import StoreSettings


class ContentStore(Protocol):
    locator_base: str

    async def upload(self, data: bytes) -> str:  # returns content identifier
        ...

    async def fetch(self, identifier: str) -> bytes:
        ...


def build_locator(base: str, identifier: str) -> str:
    return f"{base}{identifier}"


def identifier_from_text(base: str, text: str) -> str:
    """Reduce scanned text to a content identifier.

    Bare identifiers are returned unchanged. Locators built with ``base`` lose
    the prefix; any other URL yields its last path segment.
    """
    value = text.strip()
    if base and value.startswith(base):
        return value[len(base):].strip("/")
    if "://" in value:
        path = value.split("://", 1)[1].split("?", 1)[0].split("#", 1)[0]
        segments = [segment for segment in path.split("/")[1:] if segment]
        return segments[-1] if segments else ""
    return value


def build_store(settings: "StoreSettings") -> ContentStore:
    if settings.backend == "local":
        from cartcode.storage.local import LocalStore

        return LocalStore(settings.local_root)

    from cartcode.storage.ipfs import IpfsStore

    return IpfsStore(
        api_url=settings.api_url,
        gateway_url=settings.gateway_url,
        auth=settings.credentials,
        request_timeout=settings.request_timeout_s,
    )


__all__ = ["ContentStore", "build_locator", "identifier_from_text", "build_store"]
