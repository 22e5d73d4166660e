"""Tests for the image snapshot strategy."""

from __future__ import annotations

import pytest
from PIL import Image

from snapdiff import strategy
from snapdiff.compare import ComparisonConfig
from snapdiff.image import PillowImage
from snapdiff.strategy import Attachment, ImageDiffing, ImageSnapshotting


def _solid(color: tuple[int, ...], size: tuple[int, int] = (4, 4)) -> PillowImage:
    return PillowImage(Image.new("RGBA", size, color))


class TestImageFactory:
    def test_defaults(self) -> None:
        snap = strategy.image()
        assert isinstance(snap, ImageSnapshotting)
        assert snap.path_extension == "png"
        assert snap.diffing.config == ComparisonConfig(precision=1.0, subpixel_threshold=0)

    def test_custom_tolerance(self) -> None:
        snap = strategy.image(precision=0.9, subpixel_threshold=4)
        assert snap.diffing.config.precision == 0.9
        assert snap.diffing.config.subpixel_threshold == 4

    def test_invalid_precision(self) -> None:
        with pytest.raises(ValueError, match="precision"):
            strategy.image(precision=2.0)


class TestImageDiffingData:
    def test_to_data_from_data(self) -> None:
        diffing = ImageDiffing()
        img = _solid((9, 8, 7, 255))
        data = diffing.to_data(img)
        restored = diffing.from_data(data)
        assert restored.size == (4, 4)
        assert restored.to_canonical_bytes() == img.to_canonical_bytes()


class TestImageDiffingDiff:
    def test_match_returns_none(self) -> None:
        diffing = ImageDiffing()
        assert diffing.diff(_solid((1, 2, 3, 255)), _solid((1, 2, 3, 255))) is None

    def test_mismatch_message_and_attachments(self) -> None:
        old = _solid((0, 0, 0, 255))
        new = _solid((255, 255, 255, 255))
        outcome = ImageDiffing().diff(old, new)
        assert outcome is not None
        message, attachments = outcome
        assert message == "Newly-taken snapshot does not match reference."
        assert [a.name for a in attachments] == ["reference", "failure", "difference"]
        assert attachments[0].image is old
        assert attachments[1].image is new

    def test_size_mismatch_message(self) -> None:
        outcome = ImageDiffing().diff(_solid((0, 0, 0, 255)), _solid((0, 0, 0, 255), (4, 6)))
        assert outcome is not None
        message, attachments = outcome
        assert message == "Newly-taken snapshot@(4, 6) does not match reference@(4, 4)."
        difference = PillowImage.decode(attachments[2].png_bytes())
        assert difference.size == (4, 6)

    def test_tolerance_applied(self) -> None:
        img = Image.new("RGBA", (4, 4), (0, 0, 0, 255))
        img.putpixel((0, 0), (255, 0, 0, 255))
        diffing = strategy.image(precision=0.9).diffing
        assert diffing.diff(_solid((0, 0, 0, 255)), PillowImage(img)) is None


class TestAttachment:
    def test_png_bytes(self) -> None:
        att = Attachment("reference", _solid((1, 1, 1, 255)))
        assert att.png_bytes().startswith(b"\x89PNG")
