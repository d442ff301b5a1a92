"""Error taxonomy for stage-wise testing."""

from __future__ import annotations


class StageWiseError(ValueError):
    """Base class for structural input errors raised by stagewise."""


class DimensionMismatch(StageWiseError):
    """Screening and confirmation inputs do not describe the same units."""


class MissingUnit(StageWiseError):
    """Confirmation data references a unit that has no screening p-value."""


class InvalidAdjustment(StageWiseError):
    """User-supplied adjustment vector does not fit the confirmation hypotheses."""


class InvalidAlpha(StageWiseError):
    """Target OFDR level outside (0, 1)."""


class InvalidPValue(StageWiseError):
    """A p-value is missing, non-numeric or outside [0, 1]."""
