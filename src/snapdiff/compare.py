"""Pixel comparison of a reference image against a candidate."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from snapdiff.diff_render import diff
from snapdiff.errors import ComparisonError, DimensionMismatch, ThresholdExceeded, Undecodable
from snapdiff.image import CHANNELS, PixelBuffer, RasterImage, extract

logger = logging.getLogger(__name__)

DEFAULT_SUBPIXEL_THRESHOLD = 0


@dataclass(frozen=True)
class ComparisonConfig:
    """Tolerance settings for a single comparison.

    Attributes:
        precision: Fraction of pixels that must match; 1.0 allows no difference.
        subpixel_threshold: Largest per-channel byte difference still counted as equal.
    """

    precision: float = 1.0
    subpixel_threshold: int = DEFAULT_SUBPIXEL_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.precision <= 1.0:
            raise ValueError(f"precision must be within [0, 1], got {self.precision}")
        if not 0 <= self.subpixel_threshold <= 255:
            raise ValueError(
                f"subpixel_threshold must be within [0, 255], got {self.subpixel_threshold}"
            )


@dataclass(frozen=True)
class Match:
    """The candidate matches the reference."""

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Mismatch:
    """The candidate does not match the reference."""

    message: str
    diff_image: RasterImage | None = None
    reference: RasterImage | None = None
    candidate: RasterImage | None = None

    def __bool__(self) -> bool:
        return False

    @property
    def attachments(self) -> Iterator[RasterImage]:
        """Yield reference, candidate and diff image, in that order."""
        for image in (self.reference, self.candidate, self.diff_image):
            if image is not None:
                yield image


ComparisonResult = Match | Mismatch


def exact(a: PixelBuffer, b: PixelBuffer) -> bool:
    """Return True iff both buffers hold the same dimensions and bytes."""
    if a.width == 0 or a.height == 0:
        return False
    if a.width != b.width or a.height != b.height:
        return False
    if a.bytes_per_row != b.bytes_per_row:
        return False
    byte_count = a.height * a.bytes_per_row
    return a.data[:byte_count] == b.data[:byte_count]


def tolerant(a: PixelBuffer, b: PixelBuffer, precision: float, threshold: int) -> bool:
    """Compare subpixels against *threshold* within a pixel budget.

    The budget is ``floor((1 - precision) * pixel_count)`` pixels, but every
    subpixel whose absolute difference exceeds *threshold* counts against it
    individually. Bytes are read by flat index over ``pixel_count * 4``, so
    rows are assumed tightly packed.

    Raises:
        DimensionMismatch: If the buffers differ in width or height.
    """
    if a.width != b.width or a.height != b.height:
        raise DimensionMismatch(f"{a.width}x{a.height} vs {b.width}x{b.height}")
    pixel_count = a.pixel_count
    # float64: (1 - 0.9) * 10 truncates to 0, not 1
    allowed = int((1 - precision) * pixel_count)
    count = pixel_count * CHANNELS
    old = a.flat(count).astype(np.int16)
    new = b.flat(count).astype(np.int16)
    different = int(np.count_nonzero(np.abs(old - new) > threshold))
    return different <= allowed


def _message(old: RasterImage, new: RasterImage) -> str:
    old_size = (old.width, old.height)
    new_size = (new.width, new.height)
    if old_size == new_size:
        return "Newly-taken snapshot does not match reference."
    return f"Newly-taken snapshot@{new_size} does not match reference@{old_size}."


def _mismatch(old: RasterImage, new: RasterImage, reason: ComparisonError) -> Mismatch:
    logger.debug("snapshot mismatch: %s", reason)
    try:
        diff_image: RasterImage | None = diff(old, new)
    except Exception:  # noqa: BLE001
        logger.exception("failed to render difference image")
        diff_image = None
    return Mismatch(
        message=_message(old, new),
        diff_image=diff_image,
        reference=old,
        candidate=new,
    )


def _round_trip(image: RasterImage) -> PixelBuffer:
    """Re-encode *image* canonically and extract the decoded copy."""
    try:
        decoded = type(image).decode(image.encode())
    except Exception as exc:  # noqa: BLE001
        raise Undecodable(f"canonical round trip failed: {exc}") from exc
    return extract(decoded)


def _check(old: RasterImage, new: RasterImage, config: ComparisonConfig) -> None:
    """Raise a :class:`ComparisonError` unless *new* matches *old*."""
    if old.width != new.width or old.height != new.height:
        raise DimensionMismatch(f"{new.width}x{new.height} vs reference {old.width}x{old.height}")
    old_buf = extract(old)
    new_buf = extract(new)
    if exact(old_buf, new_buf):
        return
    if exact(old_buf, _round_trip(new)):
        return
    if config.precision >= 1.0:
        raise ThresholdExceeded("images differ and precision is 1.0")
    if not tolerant(old_buf, new_buf, config.precision, config.subpixel_threshold):
        raise ThresholdExceeded(
            f"differing subpixels exceed budget for precision {config.precision}"
        )


def compare(
    old: RasterImage,
    new: RasterImage,
    config: ComparisonConfig,
) -> ComparisonResult:
    """Compare a reference image against a newly produced candidate.

    Exact byte equality is tried first, then again after a PNG round trip of
    the candidate, and only then the tolerant comparison when precision is
    below 1.0. Any condition preventing a match, including unreadable pixel
    data, yields a :class:`Mismatch` carrying a diff image.

    Args:
        old: Reference image.
        new: Candidate image.
        config: Tolerance settings.

    Returns:
        Match or Mismatch.
    """
    try:
        _check(old, new, config)
    except ComparisonError as exc:
        return _mismatch(old, new, exc)
    return Match()
