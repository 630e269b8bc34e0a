"""Visual codes: render short text into a barcode/QR image and scan it back."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from cartcode.settings import CodecKind, RenderSettings, ScanSettings


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"

    @property
    def extension(self) -> str:
        return ".png" if self is ImageFormat.PNG else ".jpg"

    @classmethod
    def from_path(cls, path: Path) -> "ImageFormat":
        if path.suffix.lower() in {".jpg", ".jpeg"}:
            return cls.JPEG
        return cls.PNG


class VisualCodec(Protocol):
    kind: "CodecKind"
    label: str
    encodes_locator: bool

    def render(self, text: str, caption: str, image_format: ImageFormat) -> bytes:
        ...

    def scan(self, image_path: Path) -> str:
        ...


def get_visual_codec(kind: "CodecKind", render: "RenderSettings", scan: "ScanSettings") -> VisualCodec:
    from cartcode.settings import CodecKind

    if CodecKind(kind) is CodecKind.QR:
        from cartcode.visual.qr import QrCodec

        return QrCodec(render, scan)

    from cartcode.visual.barcode import BarcodeCodec

    return BarcodeCodec(render, scan)


__all__ = ["ImageFormat", "VisualCodec", "get_visual_codec"]
