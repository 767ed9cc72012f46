"""Exception hierarchy for mosaic generation.

Whole-request failures (missing target, missing tiles, too few tiles) derive
from :class:`MosaicError` and abort a generation before any compositing work.
Per-item failures (:class:`ProcessingError`, :class:`PyramidTileError`) are
raised by single-tile helpers and recovered by their callers, which skip the
item and count it.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every error surfaced to the caller."""


class InputError(MosaicError):
    """A request precondition is not met."""


class NoTargetImageError(InputError):
    def __init__(self) -> None:
        super().__init__("No target image uploaded")


class NoTilesError(InputError):
    def __init__(self) -> None:
        super().__init__("No tile images uploaded")


class InsufficientTilesError(MosaicError):
    """Duplicates are disabled and the pool is smaller than the grid."""

    def __init__(self, needed: int, have: int) -> None:
        self.needed = needed
        self.have = have
        super().__init__(
            f"Not enough unique tiles. Need {needed} tiles but only have {have}. "
            "Enable duplicates or upload more tile images."
        )


class ProcessingError(MosaicError):
    """A single tile image could not be decoded or rendered."""


class PyramidTileError(MosaicError):
    """A single Deep Zoom tile could not be extracted or encoded."""


class GenerationCancelledError(MosaicError):
    """The owning session was closed while a generation was in flight."""
