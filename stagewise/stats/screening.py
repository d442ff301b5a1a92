"""Screening-stage FDR adjustment."""

from __future__ import annotations

import numpy as np

from stagewise.core.utils import pvalues_1d


def bh_fdr(pvals: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg step-up q-values, computed jointly over all entries."""
    arr = pvalues_1d("pvals", pvals)
    m = int(arr.size)
    order = np.argsort(arr, kind="mergesort")
    ranked = arr[order]
    ranks = np.arange(1, m + 1, dtype=float)
    adj = ranked * (float(m) / ranks)
    adj = np.minimum.accumulate(adj[::-1])[::-1]
    adj = np.clip(adj, 0.0, 1.0)
    q = np.empty_like(adj)
    q[order] = adj
    return q


def adjust_screening(p_screen: np.ndarray, already_adjusted: bool = False) -> np.ndarray:
    if already_adjusted:
        return pvalues_1d("p_screen", p_screen).copy()
    return bh_fdr(p_screen)


def screening_pass(q_screen: np.ndarray, alpha: float) -> np.ndarray:
    return np.asarray(q_screen, dtype=float) <= float(alpha)


def screening_alpha(passed: np.ndarray, alpha: float) -> float:
    """Confirmation-stage level alpha_I = alpha * R / G.

    R is the number of units passing screening and G the number screened.
    """
    mask = np.asarray(passed, dtype=bool).ravel()
    if mask.size == 0:
        return 0.0
    return float(alpha) * float(mask.sum()) / float(mask.size)
