"""Raster images and their canonical pixel buffers."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
import numpy.typing as npt
from PIL import Image

from snapdiff.errors import EmptyImage, Undecodable

CHANNELS = 4
CANONICAL_MODE = "RGBa"
CANONICAL_FORMAT = "PNG"

# Premultiplied modes and their straight-alpha counterparts.
_UNPREMULTIPLIED = {"La": "LA", "RGBa": "RGBA"}
_PNG_MODES = ("RGBA", "RGB", "L", "LA", "P", "1", "I", "I;16")


def _as_rgba(image: Image.Image) -> Image.Image:
    if image.mode == "RGBA":
        return image
    if image.mode in _UNPREMULTIPLIED:
        image = image.convert(_UNPREMULTIPLIED[image.mode])
    return image.convert("RGBA")


@dataclass(frozen=True)
class PixelBuffer:
    """Premultiplied RGBA bytes, top-left origin, row-major."""

    width: int
    height: int
    bytes_per_row: int
    data: bytes

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"negative dimensions: {self.width}x{self.height}")
        if self.bytes_per_row < self.width * CHANNELS:
            raise ValueError(
                f"bytes_per_row {self.bytes_per_row} < width * {CHANNELS} ({self.width * CHANNELS})"
            )
        if len(self.data) != self.height * self.bytes_per_row:
            raise ValueError(
                f"buffer length {len(self.data)} != height * bytes_per_row "
                f"({self.height * self.bytes_per_row})"
            )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def flat(self, count: int) -> npt.NDArray[np.uint8]:
        """Return the first *count* bytes as a read-only uint8 array.

        Raises:
            IndexError: If the buffer holds fewer than *count* bytes.
        """
        if count < 0 or count > len(self.data):
            raise IndexError(f"read of {count} bytes from a {len(self.data)}-byte buffer")
        return np.frombuffer(self.data, dtype=np.uint8, count=count)


@runtime_checkable
class RasterImage(Protocol):
    """Capabilities the comparison core needs from a decoded bitmap."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def to_canonical_bytes(self) -> PixelBuffer: ...

    def encode(self) -> bytes: ...

    @classmethod
    def decode(cls, data: bytes) -> RasterImage: ...


class PillowImage:
    """:class:`RasterImage` adapter over a ``PIL.Image.Image``.

    The wrapped image is never modified; conversions always produce copies.
    """

    def __init__(self, image: Image.Image) -> None:
        self._image = image

    def __repr__(self) -> str:
        return f"PillowImage(mode={self._image.mode!r}, size={self._image.size})"

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def size(self) -> tuple[int, int]:
        return self._image.size

    def to_canonical_bytes(self) -> PixelBuffer:
        premultiplied = _as_rgba(self._image).convert(CANONICAL_MODE)
        return PixelBuffer(
            width=premultiplied.width,
            height=premultiplied.height,
            bytes_per_row=premultiplied.width * CHANNELS,
            data=premultiplied.tobytes(),
        )

    def encode(self) -> bytes:
        """Serialize to PNG, the canonical storage encoding."""
        image = self._image
        if image.mode not in _PNG_MODES:
            image = _as_rgba(image)
        buf = io.BytesIO()
        image.save(buf, format=CANONICAL_FORMAT)
        return buf.getvalue()

    @classmethod
    def decode(cls, data: bytes) -> PillowImage:
        img = Image.open(io.BytesIO(data))
        try:
            img.load()
        except Exception:
            img.close()
            raise
        return cls(img)

    @classmethod
    def open(cls, path: Path) -> PillowImage:
        """Load an image file eagerly.

        Raises:
            FileNotFoundError: If *path* does not exist.
            PIL.UnidentifiedImageError: If the file is not a valid image.
        """
        with Image.open(path) as img:
            img.load()
            return cls(img.copy())


def extract(image: RasterImage) -> PixelBuffer:
    """Normalize *image* into its canonical :class:`PixelBuffer`.

    Raises:
        EmptyImage: If the image has zero width or height.
        Undecodable: If the pixel data cannot be read.
    """
    if image.width == 0 or image.height == 0:
        raise EmptyImage(f"empty image: {image.width}x{image.height}")
    try:
        return image.to_canonical_bytes()
    except Exception as exc:  # noqa: BLE001
        raise Undecodable(f"cannot read pixel data: {exc}") from exc
