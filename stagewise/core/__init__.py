"""Core input model and typed containers."""

from stagewise.core.problem import StageWiseProblem, StageWiseTxProblem
from stagewise.core.types import (
    Method,
    StageWiseConfig,
    StageWiseResult,
    StageWiseTxResult,
    check_alpha,
)

__all__ = [
    "Method",
    "StageWiseConfig",
    "StageWiseProblem",
    "StageWiseTxProblem",
    "StageWiseResult",
    "StageWiseTxResult",
    "check_alpha",
]
