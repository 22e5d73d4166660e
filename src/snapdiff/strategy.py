"""Snapshot strategies pairing PNG storage with image diffing."""

from __future__ import annotations

from dataclasses import dataclass, field

from snapdiff.compare import DEFAULT_SUBPIXEL_THRESHOLD, ComparisonConfig, Mismatch, compare
from snapdiff.image import PillowImage, RasterImage

ATTACHMENT_NAMES = ("reference", "failure", "difference")


@dataclass(frozen=True)
class Attachment:
    """A named image meant for a failure report."""

    name: str
    image: RasterImage

    def png_bytes(self) -> bytes:
        return self.image.encode()


@dataclass(frozen=True)
class ImageDiffing:
    """Converts images to and from PNG bytes and diffs two of them."""

    config: ComparisonConfig = field(default_factory=ComparisonConfig)

    def to_data(self, image: RasterImage) -> bytes:
        return image.encode()

    def from_data(self, data: bytes) -> PillowImage:
        return PillowImage.decode(data)

    def diff(self, old: RasterImage, new: RasterImage) -> tuple[str, list[Attachment]] | None:
        """Return ``None`` on a match, otherwise a message and attachments."""
        result = compare(old, new, self.config)
        if not isinstance(result, Mismatch):
            return None
        images = (result.reference, result.candidate, result.diff_image)
        attachments = [
            Attachment(name, image)
            for name, image in zip(ATTACHMENT_NAMES, images)
            if image is not None
        ]
        return result.message, attachments


@dataclass(frozen=True)
class ImageSnapshotting:
    """Where a snapshot's bytes go is up to the caller; this names the format."""

    diffing: ImageDiffing
    path_extension: str = "png"


def image(
    precision: float = 1.0,
    subpixel_threshold: int = DEFAULT_SUBPIXEL_THRESHOLD,
) -> ImageSnapshotting:
    """Build an image snapshot strategy.

    Args:
        precision: Fraction of pixels that must match; 1.0 requires all of them.
        subpixel_threshold: Byte difference at which two subpixels count as different.
    """
    config = ComparisonConfig(precision=precision, subpixel_threshold=subpixel_threshold)
    return ImageSnapshotting(diffing=ImageDiffing(config))
