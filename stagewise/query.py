"""Read-only accessors over stage-wise inputs and results."""

from __future__ import annotations

import logging

import pandas as pd

from stagewise.core.problem import StageWiseProblem, StageWiseTxProblem
from stagewise.core.types import (
    SCREEN_COL,
    SUBUNIT_COL,
    UNIT_COL,
    UNIT_ID_COL,
    StageWiseResult,
    StageWiseTxResult,
)

Result = StageWiseResult | StageWiseTxResult


def _check_result(result) -> None:
    if not isinstance(result, (StageWiseResult, StageWiseTxResult)):
        raise TypeError(f"Expected a stage-wise result, got {type(result).__name__}.")


def _problem_of(obj) -> StageWiseProblem | StageWiseTxProblem:
    if isinstance(obj, (StageWiseResult, StageWiseTxResult)):
        return obj.problem
    if isinstance(obj, (StageWiseProblem, StageWiseTxProblem)):
        return obj
    raise TypeError(f"Expected a stage-wise problem or result, got {type(obj).__name__}.")


def _screen_column(result: Result) -> str:
    return UNIT_COL if isinstance(result, StageWiseTxResult) else SCREEN_COL


def get_adjusted_pvalues(
    result: Result,
    only_significant_units: bool = False,
    order: bool = True,
    *,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """Stage-wise adjusted p-values.

    Rows of units failing screening hold NA in every confirmation column.
    With `order`, rows are sorted by ascending screening q-value, ties kept
    in input order.
    """
    _check_result(result)
    log = logger or logging.getLogger("stagewise")
    log.warning(
        "Stage-wise adjusted p-values are only valid at the target OFDR level %g; "
        "rerun adjust() for any other level.",
        result.alpha,
    )
    table = result.adjusted
    screen_col = _screen_column(result)
    if only_significant_units:
        table = table.loc[result.significance[screen_col].to_numpy() == 1]
    if order:
        table = table.sort_values(screen_col, kind="mergesort")
    return table


def get_results(result: Result) -> pd.DataFrame:
    """Binary significance table, 1 = significant, 0 = not."""
    _check_result(result)
    return result.significance


def get_significant_units(result: Result) -> list[str]:
    """Unit ids passing screening, in screening input order."""
    _check_result(result)
    if isinstance(result, StageWiseTxResult):
        flagged = result.significance[UNIT_COL].to_numpy() == 1
        passed = set(result.adjusted[UNIT_ID_COL].to_numpy()[flagged])
        return [str(u) for u in result.problem.unit_ids if u in passed]
    flags = result.significance[SCREEN_COL].to_numpy() == 1
    return [str(u) for u in result.significance.index[flags]]


def get_significant_subunits(result: StageWiseTxResult) -> list[str]:
    if not isinstance(result, StageWiseTxResult):
        raise TypeError("Significant sub-units are only defined for transcript-level results.")
    flags = result.significance[SUBUNIT_COL].to_numpy() == 1
    return [str(t) for t in result.significance.index[flags]]


def get_pscreen(obj) -> pd.Series:
    return _problem_of(obj).screen_series()


def get_pconfirmation(obj) -> pd.DataFrame | pd.Series:
    problem = _problem_of(obj)
    if isinstance(problem, StageWiseTxProblem):
        return problem.confirmation_series()
    return problem.confirmation_frame()


def get_tx2gene(obj) -> pd.DataFrame:
    problem = _problem_of(obj)
    if not isinstance(problem, StageWiseTxProblem):
        raise TypeError("tx2gene is only defined for transcript-level problems.")
    return problem.tx2gene()


def is_screen_adjusted(obj) -> bool:
    return bool(_problem_of(obj).p_screen_adjusted)
