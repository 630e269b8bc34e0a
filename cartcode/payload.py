"""Optional archival wrapping applied before upload and after fetch."""

from __future__ import annotations

import io
import zipfile
import zlib
from typing import Protocol

from cartcode.exceptions import CorruptPayloadError

ENTRY_NAME = "cart.tic"
# zip timestamps start in 1980; a fixed value keeps pack() deterministic
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class PayloadCodec(Protocol):
    packed: bool

    def pack(self, data: bytes) -> bytes:
        ...

    def unpack(self, data: bytes) -> bytes:
        ...


class PassthroughCodec:
    """Transfers the raw cartridge bytes."""

    packed = False

    def pack(self, data: bytes) -> bytes:
        return bytes(data)

    def unpack(self, data: bytes) -> bytes:
        if not data:
            raise CorruptPayloadError("Downloaded cartridge data is empty")
        return bytes(data)


class ZipPayloadCodec:
    """Wraps the cartridge in a single-entry DEFLATE zip archive."""

    packed = True

    def __init__(self, entry_name: str = ENTRY_NAME, compresslevel: int = 9) -> None:
        self.entry_name = entry_name
        self.compresslevel = compresslevel

    def pack(self, data: bytes) -> bytes:
        info = zipfile.ZipInfo(self.entry_name, date_time=_FIXED_DATE_TIME)
        info.compress_type = zipfile.ZIP_DEFLATED
        info.external_attr = 0o644 << 16
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr(info, bytes(data), compresslevel=self.compresslevel)
        return buffer.getvalue()

    def unpack(self, data: bytes) -> bytes:
        """Extract the archived cartridge bytes.

        Raises:
            CorruptPayloadError: If the container is unreadable, fails its CRC
                check, or holds no usable entry.
        """
        if not data:
            raise CorruptPayloadError("Downloaded archive is empty")
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as archive:
                names = [name for name in archive.namelist() if not name.endswith("/")]
                if self.entry_name in names:
                    name = self.entry_name
                elif len(names) == 1:
                    name = names[0]
                else:
                    raise CorruptPayloadError(
                        "Archive does not contain a cartridge entry",
                        {"entries": ", ".join(names)},
                    )
                content = archive.read(name)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError, NotImplementedError) as exc:
            raise CorruptPayloadError(f"Archive could not be unpacked: {exc}") from exc
        if not content:
            raise CorruptPayloadError("Archived cartridge entry is empty", {"entry": name})
        return content


def get_payload_codec(pack: bool) -> PayloadCodec:
    return ZipPayloadCodec() if pack else PassthroughCodec()


__all__ = ["ENTRY_NAME", "PayloadCodec", "PassthroughCodec", "ZipPayloadCodec", "get_payload_codec"]
