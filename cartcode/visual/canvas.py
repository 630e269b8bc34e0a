"""Raster helpers shared by the barcode and QR codecs."""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

from cartcode.exceptions import (
    ArtifactWriteError,
    DecodeFailedError,
    FileNotFoundError as CartcodeFileNotFoundError,
)
from cartcode.settings import RenderSettings
from cartcode.visual import ImageFormat

CAPTION_BAND_PX = 28
_CAPTION_FONT = cv2.FONT_HERSHEY_SIMPLEX


def hex_to_bgr(value: str) -> tuple[int, int, int]:
    value = value.lstrip("#")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


def caption_band(caption: str) -> int:
    return CAPTION_BAND_PX if caption.strip() else 0


def blank_canvas(width: int, height: int, render: RenderSettings) -> np.ndarray:
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    canvas[:] = hex_to_bgr(render.background)
    return canvas


def paint_modules(canvas: np.ndarray, mask: np.ndarray, top: int, left: int, color: tuple[int, int, int]) -> None:
    """Colour the True cells of ``mask`` with its upper-left corner at (top, left)."""
    height, width = mask.shape
    region = canvas[top:top + height, left:left + width]
    region[mask] = color


def draw_caption(canvas: np.ndarray, caption: str, render: RenderSettings) -> None:
    """Write ``caption`` centred in the band at the bottom of the canvas."""
    band = caption_band(caption)
    if not band:
        return
    # Hershey fonts only cover ASCII
    text = caption.strip().encode("ascii", "replace").decode("ascii")
    height, width = canvas.shape[:2]
    scale = 0.5
    thickness = 1
    (text_w, text_h), _ = cv2.getTextSize(text, _CAPTION_FONT, scale, thickness)
    while text_w > width - 8 and scale > 0.25:
        scale = round(scale - 0.05, 2)
        (text_w, text_h), _ = cv2.getTextSize(text, _CAPTION_FONT, scale, thickness)
    x = max(0, (width - text_w) // 2)
    y = height - band + (band + text_h) // 2
    cv2.putText(canvas, text, (x, y), _CAPTION_FONT, scale, hex_to_bgr(render.line_color), thickness, cv2.LINE_AA)


def encode_image(canvas: np.ndarray, image_format: ImageFormat, render: RenderSettings) -> bytes:
    try:
        if image_format is ImageFormat.JPEG:
            ok, buffer = cv2.imencode(".jpg", canvas, [cv2.IMWRITE_JPEG_QUALITY, render.jpeg_quality])
        else:
            ok, buffer = cv2.imencode(".png", canvas)
    except cv2.error as exc:
        raise ArtifactWriteError(f"OpenCV could not encode {image_format.value} image: {exc}") from exc
    if not ok:
        raise ArtifactWriteError(f"OpenCV could not encode {image_format.value} image", {"format": image_format.value})
    return buffer.tobytes()


def load_for_scan(image_path: Path, max_side: int) -> np.ndarray:
    """Read ``image_path`` as grayscale with its long side fitted to ``max_side``.

    Larger images are shrunk to ``max_side``. Smaller ones are enlarged by the
    whole factor nearest to ``max_side / long_side``, so module edges stay sharp.
    """
    try:
        data = image_path.read_bytes()
    except FileNotFoundError as exc:
        raise CartcodeFileNotFoundError(f"This file doesn't exist: {image_path}", {"path": str(image_path)}) from exc
    except OSError as exc:
        raise DecodeFailedError(f"Could not read image {image_path}: {exc}", {"path": str(image_path)}) from exc

    gray = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_GRAYSCALE) if data else None
    if gray is None or gray.size == 0:
        raise DecodeFailedError(f"{image_path} is not a readable image", {"path": str(image_path)})

    height, width = gray.shape[:2]
    long_side = max(height, width)
    if long_side > max_side:
        factor = max_side / float(long_side)
        size = (max(1, int(round(width * factor))), max(1, int(round(height * factor))))
        return cv2.resize(gray, size, interpolation=cv2.INTER_AREA)
    factor = int(round(max_side / float(long_side)))
    if factor < 2:
        return gray
    return cv2.resize(gray, (width * factor, height * factor), interpolation=cv2.INTER_NEAREST)


__all__ = [
    "CAPTION_BAND_PX",
    "hex_to_bgr",
    "caption_band",
    "blank_canvas",
    "paint_modules",
    "draw_caption",
    "encode_image",
    "load_for_scan",
]
