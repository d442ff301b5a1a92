"""Stage-wise adjustment pass: screening, per-unit confirmation, aggregation."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from stagewise.core.problem import StageWiseProblem, StageWiseTxProblem
from stagewise.core.types import (
    SCREEN_COL,
    SUBUNIT_COL,
    SUBUNIT_ID_COL,
    UNIT_COL,
    UNIT_ID_COL,
    Method,
    StageWiseConfig,
    StageWiseResult,
    StageWiseTxResult,
    check_alpha,
)
from stagewise.parallel import parallel_map
from stagewise.stats.confirmation import check_adjustment, stagewise_adjust
from stagewise.stats.screening import adjust_screening, screening_alpha, screening_pass
from stagewise.utils import setup_logger

LOGGER_NAME = "stagewise"


def _resolve_logger(logger: logging.Logger | None) -> logging.Logger:
    if isinstance(logger, logging.Logger):
        return logger
    return logging.getLogger(LOGGER_NAME)


def _resolve_adjustment(
    method: Method,
    adjustment: Sequence[float] | None,
    k: int,
    logger: logging.Logger,
) -> np.ndarray | None:
    if method is Method.USER:
        return check_adjustment(adjustment, k)
    if adjustment is not None:
        logger.warning("adjustment is only used with method='user'; ignoring it for '%s'.", method.value)
    return None


def _confirm_unit(
    item: tuple[np.ndarray, float],
    *,
    method: Method,
    alpha: float,
    alpha_adjusted: float,
    adjustment: np.ndarray | None,
) -> np.ndarray:
    pvals, q_screen = item
    return stagewise_adjust(pvals, method, alpha, alpha_adjusted, q_screen, adjustment)


def _screen(problem, alpha: float, logger: logging.Logger) -> tuple[np.ndarray, np.ndarray, float]:
    q = adjust_screening(problem.p_screen, problem.p_screen_adjusted)
    passed = screening_pass(q, alpha)
    alpha_adjusted = screening_alpha(passed, alpha)
    logger.info(
        "Screening: %d of %d units pass at alpha=%g (alpha_I=%g)",
        int(passed.sum()),
        int(passed.size),
        alpha,
        alpha_adjusted,
    )
    return q, passed, alpha_adjusted


def _adjust_fixed(
    problem: StageWiseProblem,
    method: Method,
    alpha: float,
    adjustment: Sequence[float] | None,
    n_jobs: int,
    backend: str,
    logger: logging.Logger,
) -> StageWiseResult:
    adj = _resolve_adjustment(method, adjustment, problem.n_hypotheses, logger)
    q, passed, alpha_adjusted = _screen(problem, alpha, logger)

    idx = np.flatnonzero(passed)
    func = partial(
        _confirm_unit,
        method=method,
        alpha=alpha,
        alpha_adjusted=alpha_adjusted,
        adjustment=adj,
    )
    rows = parallel_map(
        func,
        [(problem.p_confirmation[i], float(q[i])) for i in idx],
        n_jobs=n_jobs,
        backend=backend,
    )
    conf = np.full(problem.p_confirmation.shape, np.nan, dtype=float)
    if rows:
        conf[idx] = np.vstack(rows)

    adjusted = pd.DataFrame(conf, index=problem.unit_ids.copy(), columns=problem.hypothesis_ids.copy())
    adjusted = adjusted.astype("Float64")
    adjusted.insert(0, SCREEN_COL, pd.array(q, dtype="Float64"))

    significance = pd.DataFrame(
        (conf <= alpha).astype(int),
        index=problem.unit_ids.copy(),
        columns=problem.hypothesis_ids.copy(),
    )
    significance.insert(0, SCREEN_COL, (q <= alpha).astype(int))

    return StageWiseResult(
        problem=problem,
        method=method,
        alpha=alpha,
        alpha_adjusted=alpha_adjusted,
        n_screened=int(passed.sum()),
        _adjusted=adjusted,
        _significance=significance,
    )


def _adjust_tx(
    problem: StageWiseTxProblem,
    method: Method,
    alpha: float,
    adjustment: Sequence[float] | None,
    n_jobs: int,
    backend: str,
    logger: logging.Logger,
) -> StageWiseTxResult:
    members = problem.unit_members()
    k_max = max(len(pos) for pos in members.values())
    adj = _resolve_adjustment(method, adjustment, k_max, logger)
    q, passed, alpha_adjusted = _screen(problem, alpha, logger)

    screened = [
        members[str(unit)] for unit, ok in zip(problem.unit_ids, passed) if ok
    ]
    q_screened = q[passed]
    if method is Method.DTU:
        n_single = sum(1 for pos in screened if pos.size == 1)
        if n_single:
            logger.info("dtu: %d screened units with one sub-unit are not tested", n_single)

    func = partial(
        _confirm_unit,
        method=method,
        alpha=alpha,
        alpha_adjusted=alpha_adjusted,
        adjustment=adj,
    )
    rows = parallel_map(
        func,
        [(problem.p_confirmation[pos], float(qi)) for pos, qi in zip(screened, q_screened)],
        n_jobs=n_jobs,
        backend=backend,
    )
    conf = np.full(problem.n_subunits, np.nan, dtype=float)
    for pos, row in zip(screened, rows):
        conf[pos] = row

    q_tx = pd.Series(q, index=problem.unit_ids).reindex(problem.subunit_units).to_numpy()
    index = problem.subunit_ids.copy()
    adjusted = pd.DataFrame(
        {
            UNIT_ID_COL: problem.subunit_units.to_numpy(),
            SUBUNIT_ID_COL: problem.subunit_ids.to_numpy(),
            UNIT_COL: pd.array(q_tx, dtype="Float64"),
            SUBUNIT_COL: pd.array(conf, dtype="Float64"),
        },
        index=index,
    )
    significance = pd.DataFrame(
        {
            UNIT_COL: (q_tx <= alpha).astype(int),
            SUBUNIT_COL: (conf <= alpha).astype(int),
        },
        index=index.copy(),
    )

    return StageWiseTxResult(
        problem=problem,
        method=method,
        alpha=alpha,
        alpha_adjusted=alpha_adjusted,
        n_screened=int(passed.sum()),
        _adjusted=adjusted,
        _significance=significance,
    )


def adjust(
    problem: StageWiseProblem | StageWiseTxProblem,
    method: Method | str = Method.HOLM,
    alpha: float = 0.05,
    adjustment: Sequence[float] | None = None,
    *,
    n_jobs: int = 1,
    backend: str = "threading",
    logger: logging.Logger | None = None,
) -> StageWiseResult | StageWiseTxResult:
    """Run one stage-wise adjustment pass at target OFDR level `alpha`.

    Args:
        problem: Validated input model.
        method: Confirmation strategy, one of none/user/holm/dtu.
        alpha: Target OFDR level in (0, 1).
        adjustment: Per-rank multipliers, required for method='user'.
        n_jobs: Workers for the per-unit confirmation loop.
        backend: joblib backend used when n_jobs > 1.
        logger: Optional logger; defaults to the "stagewise" logger.

    Returns:
        A new immutable result, valid only at `alpha`.
    """
    alpha = check_alpha(alpha)
    method = Method.parse(method)
    log = _resolve_logger(logger)
    if isinstance(problem, StageWiseTxProblem):
        return _adjust_tx(problem, method, alpha, adjustment, n_jobs, backend, log)
    if isinstance(problem, StageWiseProblem):
        return _adjust_fixed(problem, method, alpha, adjustment, n_jobs, backend, log)
    raise TypeError(
        f"problem must be a StageWiseProblem or StageWiseTxProblem, got {type(problem).__name__}."
    )


def adjust_with_config(
    problem: StageWiseProblem | StageWiseTxProblem,
    config: StageWiseConfig,
    *,
    logger: logging.Logger | None = None,
    log_path: str | Path | None = None,
) -> StageWiseResult | StageWiseTxResult:
    """Run `adjust` with the parameters of `config`.

    With `log_path`, the run's log records are also written to that file
    through `setup_logger`, using the name of `logger` when one is given.
    """
    if log_path is not None:
        logger = setup_logger(log_path, logger.name if logger is not None else LOGGER_NAME)
    return adjust(
        problem,
        method=config.method,
        alpha=config.alpha,
        adjustment=config.adjustment,
        n_jobs=config.n_jobs,
        backend=config.backend,
        logger=logger,
    )
