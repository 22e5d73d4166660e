"""Difference-blend visualization of two images."""

from __future__ import annotations

import numpy as np
import numpy.typing as npt
from PIL import Image

from snapdiff.image import CANONICAL_MODE, CHANNELS, PillowImage, RasterImage


def _canvas(image: RasterImage, width: int, height: int) -> npt.NDArray[np.int32]:
    """Place *image* at the origin of a transparent ``height x width`` canvas."""
    canvas = np.zeros((height, width, CHANNELS), dtype=np.int32)
    if image.width == 0 or image.height == 0:
        return canvas
    buf = image.to_canonical_bytes()
    rows = np.frombuffer(buf.data, dtype=np.uint8).reshape(buf.height, buf.bytes_per_row)
    pixels = rows[:, : buf.width * CHANNELS].reshape(buf.height, buf.width, CHANNELS)
    canvas[: buf.height, : buf.width] = pixels
    return canvas


def diff(a: RasterImage, b: RasterImage) -> PillowImage:
    """Render ``|a - b|`` per channel over the bounding box of both images.

    Colors are blended in premultiplied space and alpha is composited
    source-over, so an area covered by only one image shows that image.
    """
    width = max(a.width, b.width)
    height = max(a.height, b.height)
    top = _canvas(a, width, height)
    bottom = _canvas(b, width, height)

    out = np.empty_like(top)
    out[..., :3] = np.abs(top[..., :3] - bottom[..., :3])
    alpha_a = top[..., 3]
    alpha_b = bottom[..., 3]
    out[..., 3] = alpha_a + alpha_b - (alpha_a * alpha_b + 127) // 255

    premultiplied = Image.frombytes(
        CANONICAL_MODE, (width, height), out.astype(np.uint8).tobytes()
    )
    return PillowImage(premultiplied.convert("RGBA"))
