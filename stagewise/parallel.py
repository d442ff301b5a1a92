"""Order-stable parallel map for the per-unit confirmation loop."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from joblib import Parallel, delayed

T = TypeVar("T")
R = TypeVar("R")

BACKENDS = frozenset({"threading", "loky", "multiprocessing"})


def _call_indexed(func: Callable[[T], R], indexed: tuple[int, T]) -> tuple[int, R]:
    idx, item = indexed
    return idx, func(item)


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int = 1,
    backend: str = "threading",
    chunk_size: int = 64,
) -> list[R]:
    """Apply `func` to items; output order always matches input order.

    Items must be independent: workers share read-only inputs and each
    result is written to its own slot.
    """
    seq = list(items)
    if not seq:
        return []
    backend_name = str(backend)
    if backend_name not in BACKENDS:
        raise ValueError(
            f"Unknown backend '{backend_name}'. Use one of: {', '.join(sorted(BACKENDS))}."
        )

    jobs = max(1, int(n_jobs))
    if jobs == 1 or len(seq) == 1:
        return [func(item) for item in seq]

    rows = Parallel(
        n_jobs=jobs,
        backend=backend_name,
        batch_size=max(1, int(chunk_size)),
    )(delayed(_call_indexed)(func, pair) for pair in enumerate(seq))
    rows.sort(key=lambda x: x[0])
    return [row for _, row in rows]
