"""Internal comparison failures.

These never escape :func:`snapdiff.compare.compare`; every one of them is
folded into a ``Mismatch`` result.
"""

from __future__ import annotations


class ComparisonError(Exception):
    """Base class for conditions that prevent a pixel-level match."""


class EmptyImage(ComparisonError):
    """Image has zero width or zero height."""


class Undecodable(ComparisonError):
    """Pixel data or the canonical encoding could not be obtained."""


class DimensionMismatch(ComparisonError):
    """Images differ in width or height."""


class ThresholdExceeded(ComparisonError):
    """Tolerant comparison exhausted its mismatch budget."""
