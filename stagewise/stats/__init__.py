"""Screening and confirmation statistics."""

from stagewise.stats.confirmation import (
    check_adjustment,
    fwer_adjust,
    multipliers,
    stagewise_adjust,
)
from stagewise.stats.screening import (
    adjust_screening,
    bh_fdr,
    screening_alpha,
    screening_pass,
)

__all__ = [
    "adjust_screening",
    "bh_fdr",
    "screening_alpha",
    "screening_pass",
    "check_adjustment",
    "fwer_adjust",
    "multipliers",
    "stagewise_adjust",
]
