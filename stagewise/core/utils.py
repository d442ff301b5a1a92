"""Small pure helpers for input validation."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from stagewise.exceptions import DimensionMismatch, InvalidPValue


def preview(labels: Iterable, n: int = 5) -> str:
    items = [str(x) for x in labels]
    head = ", ".join(items[:n])
    return f"{head}{'...' if len(items) > n else ''}"


def pvalues_1d(name: str, values, *, allow_na: bool = False) -> np.ndarray:
    try:
        arr = np.asarray(values, dtype=float).ravel()
    except (TypeError, ValueError) as exc:
        raise InvalidPValue(f"{name} must be numeric.") from exc
    _check_range(name, arr, allow_na=allow_na)
    return arr


def pvalues_2d(name: str, values, *, allow_na: bool = False) -> np.ndarray:
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidPValue(f"{name} must be numeric.") from exc
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DimensionMismatch(f"{name} must be two-dimensional, got {arr.ndim} dimensions.")
    _check_range(name, arr, allow_na=allow_na)
    return arr


def _check_range(name: str, arr: np.ndarray, *, allow_na: bool) -> None:
    if arr.size == 0:
        raise DimensionMismatch(f"{name} must contain at least one value.")
    missing = np.isnan(arr)
    if np.any(missing) and not allow_na:
        raise InvalidPValue(f"{name} contains missing values; set allow_na=True to permit them.")
    observed = arr[~missing]
    if np.any(~np.isfinite(observed)) or np.any((observed < 0.0) | (observed > 1.0)):
        raise InvalidPValue(f"{name} must lie in [0, 1].")


def unique_index(name: str, index: pd.Index) -> pd.Index:
    idx = pd.Index(index).astype(str)
    if idx.has_duplicates:
        dup = idx[idx.duplicated()].unique()
        raise DimensionMismatch(f"{name} has duplicated identifiers: {preview(dup)}.")
    return idx
