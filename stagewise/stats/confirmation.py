"""Confirmation-stage FWER strategies applied within one unit.

Every strategy follows the same ordered-adjustment scheme: sort the unit's
raw p-values ascending, multiply rank r by a strategy-specific multiplier,
take the cumulative maximum across ranks, and give tied raw p-values the
same adjusted value. Strategies only differ in their multipliers:

- ``none``: 1 for every rank.
- ``user``: caller-supplied, one entry per rank.
- ``holm``: k - r + 1.
- ``dtu``: max(k - 2, 1) for the two most significant ranks, then Holm over
  the remaining k - 2 hypotheses. Units with a single hypothesis are not
  tested and report NaN.

`stagewise_adjust` then rescales the within-unit values to the OFDR scale,
so that comparing them with alpha is equivalent to comparing the FWER
adjusted values with the screening-stage level alpha_I.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.stats import rankdata

from stagewise.core.types import Method
from stagewise.exceptions import InvalidAdjustment


def check_adjustment(adjustment: Sequence[float] | None, k: int) -> np.ndarray:
    if adjustment is None:
        raise InvalidAdjustment("method='user' requires an adjustment vector.")
    try:
        adj = np.asarray(adjustment, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise InvalidAdjustment("adjustment must be numeric.") from exc
    if adj.size != int(k):
        raise InvalidAdjustment(
            f"adjustment has {adj.size} entries but there are {k} confirmation hypotheses."
        )
    if not np.all(np.isfinite(adj)) or np.any(adj < 0.0):
        raise InvalidAdjustment("adjustment entries must be finite and non-negative.")
    return adj


def multipliers(method: Method, k: int, adjustment: np.ndarray | None = None) -> np.ndarray:
    """Per-rank multipliers for a unit with k observed hypotheses."""
    method = Method.parse(method)
    if method is Method.NONE:
        return np.ones(k, dtype=float)
    if method is Method.HOLM:
        return np.arange(k, 0, -1, dtype=float)
    if method is Method.USER:
        if adjustment is None or adjustment.size < k:
            raise InvalidAdjustment(f"adjustment needs at least {k} entries.")
        return np.asarray(adjustment[:k], dtype=float)
    top = float(max(k - 2, 1))
    head = np.full(min(k, 2), top, dtype=float)
    return np.concatenate([head, np.arange(k - 2, 0, -1, dtype=float)])


def _ordered_adjust(pvals: np.ndarray, mult: np.ndarray) -> np.ndarray:
    order = np.argsort(pvals, kind="mergesort")
    ranked = pvals[order]
    adj = np.maximum.accumulate(ranked * mult)
    # Tied p-values take the value of the last rank in their tie group.
    last = rankdata(ranked, method="max").astype(int) - 1
    adj = adj[last]
    adj = np.minimum(np.maximum(adj, ranked), 1.0)
    out = np.empty_like(adj)
    out[order] = adj
    return out


def fwer_adjust(
    pvals: np.ndarray,
    method: Method | str,
    adjustment: np.ndarray | None = None,
) -> np.ndarray:
    """Within-unit FWER adjusted p-values, NaN where nothing was tested."""
    method = Method.parse(method)
    p = np.asarray(pvals, dtype=float).ravel()
    out = np.full(p.shape, np.nan, dtype=float)
    observed = ~np.isnan(p)
    k = int(observed.sum())
    if k == 0 or (method is Method.DTU and k == 1):
        return out
    out[observed] = _ordered_adjust(p[observed], multipliers(method, k, adjustment))
    return out


def stagewise_adjust(
    pvals: np.ndarray,
    method: Method | str,
    alpha: float,
    alpha_adjusted: float,
    q_screen: float,
    adjustment: np.ndarray | None = None,
) -> np.ndarray:
    """Stage-wise adjusted confirmation p-values for one screened unit.

    The FWER adjusted values are scaled by alpha / alpha_I and floored at the
    unit's screening q-value, then capped at 1.
    """
    fwer = fwer_adjust(pvals, method, adjustment)
    if alpha_adjusted <= 0.0:
        return np.full(fwer.shape, np.nan, dtype=float)
    scaled = fwer * (float(alpha) / float(alpha_adjusted))
    scaled = np.maximum(scaled, float(q_screen))
    return np.minimum(scaled, 1.0)
