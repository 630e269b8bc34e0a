from __future__ import annotations

import asyncio
import hashlib
import re
from pathlib import Path

from cartcode.exceptions import InvalidIdentifierError, StoreUnavailableError

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


class LocalStore:
    """Content-addressed directory keyed by the SHA-256 of each payload."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.locator_base = f"{root.resolve().as_uri()}/"

    def _path(self, identifier: str) -> Path:
        return self.root / identifier[:2] / identifier

    def _write(self, data: bytes) -> str:
        identifier = hashlib.sha256(data).hexdigest()
        path = self._path(identifier)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return identifier

    async def upload(self, data: bytes) -> str:
        try:
            return await asyncio.to_thread(self._write, bytes(data))
        except OSError as exc:
            raise StoreUnavailableError(f"Writing to local store failed ({exc})", {"root": str(self.root)}) from exc

    async def fetch(self, identifier: str) -> bytes:
        identifier = (identifier or "").strip()
        if not identifier:
            raise InvalidIdentifierError("The content identifier is empty")
        if not _SHA256_HEX.match(identifier):
            raise StoreUnavailableError("Unknown identifier for local store", {"identifier": identifier})
        try:
            return await asyncio.to_thread(self._path(identifier).read_bytes)
        except OSError as exc:
            raise StoreUnavailableError(
                f"Reading from local store failed ({exc})", {"identifier": identifier}
            ) from exc


__all__ = ["LocalStore"]
