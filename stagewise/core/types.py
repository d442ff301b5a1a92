"""Typed configuration and result containers for stage-wise testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import pandas as pd

from stagewise.exceptions import InvalidAlpha

if TYPE_CHECKING:
    from stagewise.core.problem import StageWiseProblem, StageWiseTxProblem

# Column names of the reporting tables.
SCREEN_COL = "padjScreen"
UNIT_ID_COL = "geneID"
SUBUNIT_ID_COL = "txID"
UNIT_COL = "gene"
SUBUNIT_COL = "transcript"


class Method(str, Enum):
    """Confirmation-stage FWER correction strategy."""

    NONE = "none"
    USER = "user"
    HOLM = "holm"
    DTU = "dtu"

    @classmethod
    def parse(cls, value: "Method | str") -> "Method":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown method '{value}'. Use one of: {allowed}.")


def check_alpha(alpha: float) -> float:
    try:
        a = float(alpha)
    except (TypeError, ValueError) as exc:
        raise InvalidAlpha(f"alpha must be a number in (0, 1), got {alpha!r}.") from exc
    if not (0.0 < a < 1.0):
        raise InvalidAlpha(f"alpha must lie in (0, 1), got {a}.")
    return a


@dataclass(frozen=True)
class StageWiseConfig:
    """Parameters of one adjustment pass."""

    alpha: float = 0.05
    method: Method = Method.HOLM
    adjustment: tuple[float, ...] | None = None
    n_jobs: int = 1
    backend: str = "threading"

    def __post_init__(self) -> None:
        object.__setattr__(self, "alpha", check_alpha(self.alpha))
        object.__setattr__(self, "method", Method.parse(self.method))
        if self.adjustment is not None:
            object.__setattr__(self, "adjustment", tuple(float(x) for x in self.adjustment))
        if int(self.n_jobs) < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}.")


class _TablesMixin:
    """Read-only access to the tables of a result; each access returns a copy."""

    @property
    def adjusted(self) -> pd.DataFrame:
        return self._adjusted.copy()

    @property
    def significance(self) -> pd.DataFrame:
        return self._significance.copy()


@dataclass(frozen=True)
class StageWiseResult(_TablesMixin):
    """Output of `adjust` for a fixed number of hypotheses per unit.

    - `adjusted`: one row per unit, `padjScreen` followed by one stage-wise
      adjusted p-value column per hypothesis (nullable `Float64`).
    - `significance`: same shape, 1 where the adjusted value is <= `alpha`.
    """

    problem: StageWiseProblem
    method: Method
    alpha: float
    alpha_adjusted: float
    n_screened: int
    _adjusted: pd.DataFrame = field(repr=False)
    _significance: pd.DataFrame = field(repr=False)


@dataclass(frozen=True)
class StageWiseTxResult(_TablesMixin):
    """Output of `adjust` for a variable number of sub-units per unit.

    Both tables have one row per sub-unit. `adjusted` carries `geneID`,
    `txID`, `gene` (screening) and `transcript` (confirmation) columns;
    `significance` carries binary `gene` and `transcript` columns.
    """

    problem: StageWiseTxProblem
    method: Method
    alpha: float
    alpha_adjusted: float
    n_screened: int
    _adjusted: pd.DataFrame = field(repr=False)
    _significance: pd.DataFrame = field(repr=False)
