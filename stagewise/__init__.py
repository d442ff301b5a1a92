"""stagewise public API."""

from stagewise._version import __version__
from stagewise.adjustment import adjust, adjust_with_config
from stagewise.core.problem import StageWiseProblem, StageWiseTxProblem
from stagewise.core.types import Method, StageWiseConfig, StageWiseResult, StageWiseTxResult
from stagewise.exceptions import (
    DimensionMismatch,
    InvalidAdjustment,
    InvalidAlpha,
    InvalidPValue,
    MissingUnit,
    StageWiseError,
)
from stagewise.query import (
    get_adjusted_pvalues,
    get_pconfirmation,
    get_pscreen,
    get_results,
    get_significant_subunits,
    get_significant_units,
    get_tx2gene,
    is_screen_adjusted,
)

__all__ = [
    "__version__",
    "Method",
    "StageWiseConfig",
    "StageWiseProblem",
    "StageWiseTxProblem",
    "StageWiseResult",
    "StageWiseTxResult",
    "adjust",
    "adjust_with_config",
    "get_adjusted_pvalues",
    "get_results",
    "get_significant_units",
    "get_significant_subunits",
    "get_pscreen",
    "get_pconfirmation",
    "get_tx2gene",
    "is_screen_adjusted",
    "StageWiseError",
    "DimensionMismatch",
    "MissingUnit",
    "InvalidAdjustment",
    "InvalidAlpha",
    "InvalidPValue",
]
