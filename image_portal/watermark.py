"""
Watermark compositing for uploaded images.
"""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from image_portal.config import WATERMARK_MARGIN
from image_portal.errors import WatermarkError


def apply_watermark(image_bytes: bytes, watermark_path: Path, margin: int = WATERMARK_MARGIN) -> bytes:
    """Composite the watermark onto the bottom-right corner of the image.

    The output keeps the source format. A watermark wider or taller than
    the image is scaled down to fit.

    Raises:
        WatermarkError: If the watermark or the image cannot be read, or
            the result cannot be encoded.
    """
    try:
        with Image.open(watermark_path) as wm:
            mark = wm.convert("RGBA")

        with Image.open(io.BytesIO(image_bytes)) as img:
            fmt = img.format or "PNG"
            has_alpha = img.mode in ("RGBA", "LA", "P")
            base = img.convert("RGBA")

        max_w = max(base.width - 2 * margin, 1)
        max_h = max(base.height - 2 * margin, 1)
        if mark.width > max_w or mark.height > max_h:
            mark.thumbnail((max_w, max_h), Image.LANCZOS)

        x = max(base.width - mark.width - margin, 0)
        y = max(base.height - mark.height - margin, 0)
        base.alpha_composite(mark, dest=(x, y))

        # JPEG has no alpha channel
        if fmt in ("JPEG", "BMP") or not has_alpha:
            base = base.convert("RGB")

        buf = io.BytesIO()
        base.save(buf, format=fmt)
        return buf.getvalue()
    except Exception as exc:
        # Pillow also raises KeyError for read-only formats and
        # DecompressionBombError for oversized images.
        raise WatermarkError(f"Could not apply watermark {watermark_path}: {exc}") from exc
