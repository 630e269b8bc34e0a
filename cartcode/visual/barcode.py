from __future__ import annotations

from pathlib import Path

import numpy as np
import zxingcpp
from barcode.codex import Code128
from barcode.errors import BarcodeError
from loguru import logger

from cartcode.exceptions import DecodeFailedError, UnsupportedSymbolDataError
from cartcode.settings import CodecKind, RenderSettings, ScanSettings
from cartcode.visual import ImageFormat
from cartcode.visual.canvas import (
    blank_canvas,
    caption_band,
    draw_caption,
    encode_image,
    hex_to_bgr,
    load_for_scan,
    paint_modules,
)

QUIET_ZONE_MODULES = 10
_PRINTABLE = range(0x20, 0x7F)


def check_symbol_text(text: str) -> str:
    if not text:
        raise UnsupportedSymbolDataError("Cannot create a barcode from empty text")
    bad = sorted({ch for ch in text if ord(ch) not in _PRINTABLE})
    if bad:
        raise UnsupportedSymbolDataError(
            "Code 128 only encodes printable ASCII",
            {"characters": "".join(repr(ch) for ch in bad)},
        )
    return text


def code128_modules(text: str) -> np.ndarray:
    """Return the bar pattern of ``text`` as booleans, True for a dark module."""
    check_symbol_text(text)
    try:
        pattern = Code128(text).build()[0]
    except (BarcodeError, KeyError, ValueError) as exc:
        raise UnsupportedSymbolDataError(f"Code 128 cannot encode {text!r}: {exc}") from exc
    return np.frombuffer(pattern.encode("ascii"), dtype=np.uint8) == ord("1")


class BarcodeCodec:
    kind = CodecKind.BARCODE
    label = "barcode"
    encodes_locator = False

    def __init__(self, render: RenderSettings, scan: ScanSettings) -> None:
        self.render_settings = render
        self.scan_settings = scan

    def render(self, text: str, caption: str, image_format: ImageFormat) -> bytes:
        modules = code128_modules(text)
        total = modules.size + 2 * QUIET_ZONE_MODULES
        width = max(self.render_settings.width, total)
        height = self.render_settings.height
        module_px = max(1, width // total)
        logger.debug("Code 128 symbol: {} modules at {} px", modules.size, module_px)

        canvas = blank_canvas(width, height, self.render_settings)
        code_height = height - caption_band(caption)
        top = max(4, code_height // 5)
        bottom = max(top + 1, code_height - 8)
        row = np.repeat(modules, module_px)
        left = (width - total * module_px) // 2 + QUIET_ZONE_MODULES * module_px
        mask = np.broadcast_to(row, (bottom - top, row.size))
        paint_modules(canvas, mask, top, left, hex_to_bgr(self.render_settings.line_color))
        draw_caption(canvas, caption, self.render_settings)
        return encode_image(canvas, image_format, self.render_settings)

    def scan(self, image_path: Path) -> str:
        gray = load_for_scan(image_path, self.scan_settings.max_side)
        results = zxingcpp.read_barcodes(gray, formats=zxingcpp.BarcodeFormat.Code128)
        for result in results:
            if result.text:
                return result.text
        raise DecodeFailedError("Didn't detect a barcode. Check your input file!", {"path": str(image_path)})


__all__ = ["BarcodeCodec", "QUIET_ZONE_MODULES", "check_symbol_text", "code128_modules"]
