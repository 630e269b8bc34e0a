from __future__ import annotations

from pathlib import Path

import numpy as np
import segno
import zxingcpp
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

QUIET_ZONE_MODULES = 4
ERROR_LEVEL = "h"


def qr_modules(text: str) -> np.ndarray:
    """Return the QR matrix of ``text`` (quiet zone included), True for dark."""
    if not text:
        raise UnsupportedSymbolDataError("Cannot create a QR code from empty text")
    try:
        qr = segno.make_qr(text, error=ERROR_LEVEL, boost_error=False)
    except segno.DataOverflowError as exc:
        raise UnsupportedSymbolDataError(f"Text is too long for a QR code: {exc}", {"length": str(len(text))}) from exc
    logger.debug("QR symbol: version {} error level {}", qr.version, qr.error)
    rows = [[bool(cell) for cell in row] for row in qr.matrix_iter(scale=1, border=QUIET_ZONE_MODULES)]
    return np.array(rows, dtype=bool)


class QrCodec:
    kind = CodecKind.QR
    label = "QR code"
    encodes_locator = True

    def __init__(self, render: RenderSettings, scan: ScanSettings) -> None:
        self.render_settings = render
        self.scan_settings = scan

    def render(self, text: str, caption: str, image_format: ImageFormat) -> bytes:
        grid = qr_modules(text)
        size = grid.shape[0]
        band = caption_band(caption)
        width = max(self.render_settings.width, size)
        height = max(self.render_settings.height, size + band)
        code_height = height - band
        module_px = max(1, min(width, code_height) // size)

        canvas = blank_canvas(width, height, self.render_settings)
        scaled = np.repeat(np.repeat(grid, module_px, axis=0), module_px, axis=1)
        top = (code_height - scaled.shape[0]) // 2
        left = (width - scaled.shape[1]) // 2
        paint_modules(canvas, scaled, top, left, hex_to_bgr(self.render_settings.line_color))
        draw_caption(canvas, caption, self.render_settings)
        return encode_image(canvas, image_format, self.render_settings)

    def scan(self, image_path: Path) -> str:
        gray = load_for_scan(image_path, self.scan_settings.max_side)
        results = zxingcpp.read_barcodes(gray, formats=zxingcpp.BarcodeFormat.QRCode)
        for result in results:
            if result.text:
                return result.text
        raise DecodeFailedError("Didn't detect a QR code. Check your input file!", {"path": str(image_path)})


__all__ = ["QrCodec", "QUIET_ZONE_MODULES", "qr_modules"]
