"""Validated, immutable inputs of a stage-wise testing problem."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from stagewise.core.utils import preview, pvalues_1d, pvalues_2d, unique_index
from stagewise.exceptions import DimensionMismatch, MissingUnit


def _frozen(arr: np.ndarray) -> np.ndarray:
    out = np.array(arr, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def _is_default_index(index: pd.Index) -> bool:
    """True for the 0..n-1 RangeIndex pandas assigns to unlabelled data."""
    return isinstance(index, pd.RangeIndex) and index.start == 0 and index.step == 1


def _split_labels(values: Any) -> tuple[pd.Index | None, Any]:
    if isinstance(values, pd.Series):
        # A default RangeIndex carries no identifiers; such inputs align by position.
        if _is_default_index(values.index):
            return None, values.to_numpy()
        return pd.Index(values.index), values.to_numpy()
    if isinstance(values, Mapping):
        return pd.Index(list(values.keys())), list(values.values())
    return None, values


def _screen_inputs(p_screen: Any) -> tuple[pd.Index | None, np.ndarray]:
    if isinstance(p_screen, pd.DataFrame):
        if p_screen.shape[1] != 1:
            raise DimensionMismatch(
                f"p_screen must hold a single column, got {p_screen.shape[1]}."
            )
        p_screen = p_screen.iloc[:, 0]
    labels, values = _split_labels(p_screen)
    arr = pvalues_1d("p_screen", values)
    if labels is not None:
        labels = unique_index("p_screen", labels)
    return labels, arr


@dataclass(frozen=True)
class StageWiseProblem:
    """Screening p-values with a fixed number of confirmation hypotheses per unit.

    Build instances with `from_inputs`; the arrays are read-only copies of the
    caller's data, rows ordered as the screening input.
    """

    unit_ids: pd.Index
    hypothesis_ids: pd.Index
    p_screen: np.ndarray
    p_confirmation: np.ndarray
    p_screen_adjusted: bool = False
    allow_na: bool = False

    @classmethod
    def from_inputs(
        cls,
        p_screen: Any,
        p_confirmation: Any,
        p_screen_adjusted: bool = False,
        *,
        allow_na: bool = False,
    ) -> "StageWiseProblem":
        screen_ids, screen = _screen_inputs(p_screen)

        if isinstance(p_confirmation, pd.DataFrame):
            conf_ids = None
            if not _is_default_index(p_confirmation.index):
                conf_ids = unique_index("p_confirmation", p_confirmation.index)
            hyp_ids = unique_index("p_confirmation columns", p_confirmation.columns)
            conf = pvalues_2d("p_confirmation", p_confirmation.to_numpy(), allow_na=allow_na)
        else:
            conf_ids = None
            conf = pvalues_2d("p_confirmation", p_confirmation, allow_na=allow_na)
            hyp_ids = pd.Index([f"hypothesis_{j + 1}" for j in range(conf.shape[1])])

        if screen.size != conf.shape[0]:
            raise DimensionMismatch(
                f"p_screen has {screen.size} units but p_confirmation has {conf.shape[0]} rows."
            )

        if screen_ids is not None and conf_ids is not None:
            only_screen = screen_ids.difference(conf_ids)
            only_conf = conf_ids.difference(screen_ids)
            if len(only_screen) or len(only_conf):
                raise DimensionMismatch(
                    "Unit identifiers of p_screen and p_confirmation differ "
                    f"(only in p_screen: {preview(only_screen)}; "
                    f"only in p_confirmation: {preview(only_conf)})."
                )
            conf = conf[conf_ids.get_indexer(screen_ids)]
            unit_ids = screen_ids
        elif screen_ids is not None:
            unit_ids = screen_ids
        elif conf_ids is not None:
            unit_ids = conf_ids
        else:
            unit_ids = pd.Index([f"unit_{i + 1}" for i in range(screen.size)])

        return cls(
            unit_ids=unit_ids,
            hypothesis_ids=hyp_ids,
            p_screen=_frozen(screen),
            p_confirmation=_frozen(conf),
            p_screen_adjusted=bool(p_screen_adjusted),
            allow_na=bool(allow_na),
        )

    @property
    def n_units(self) -> int:
        return int(self.p_screen.size)

    @property
    def n_hypotheses(self) -> int:
        return int(self.p_confirmation.shape[1])

    def screen_series(self) -> pd.Series:
        return pd.Series(self.p_screen.copy(), index=self.unit_ids.copy(), name="pScreen")

    def confirmation_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.p_confirmation.copy(),
            index=self.unit_ids.copy(),
            columns=self.hypothesis_ids.copy(),
        )


def _tx2gene_series(tx2gene: Any) -> pd.Series:
    if isinstance(tx2gene, pd.DataFrame):
        if tx2gene.shape[1] < 2:
            raise DimensionMismatch("tx2gene must have a sub-unit column and a unit column.")
        pairs = pd.Series(
            tx2gene.iloc[:, 1].astype(str).to_numpy(),
            index=tx2gene.iloc[:, 0].astype(str).to_numpy(),
        )
    elif isinstance(tx2gene, pd.Series):
        pairs = pd.Series(tx2gene.astype(str).to_numpy(), index=tx2gene.index.astype(str))
    elif isinstance(tx2gene, Mapping):
        pairs = pd.Series(
            [str(v) for v in tx2gene.values()], index=[str(k) for k in tx2gene.keys()]
        )
    else:
        raise TypeError("tx2gene must be a DataFrame, Series or mapping.")

    frame = pd.DataFrame({"tx": pairs.index, "gene": pairs.to_numpy()}).drop_duplicates()
    ambiguous = frame["tx"][frame["tx"].duplicated()].unique()
    if len(ambiguous):
        raise DimensionMismatch(
            f"Sub-units mapped to more than one unit: {preview(ambiguous)}."
        )
    return pd.Series(frame["gene"].to_numpy(), index=pd.Index(frame["tx"]), name="gene")


@dataclass(frozen=True)
class StageWiseTxProblem:
    """Screening p-values per unit with one confirmation p-value per sub-unit.

    The number of sub-units per unit varies; `subunit_units` holds the owning
    unit of every sub-unit, aligned with `subunit_ids`.
    """

    unit_ids: pd.Index
    subunit_ids: pd.Index
    subunit_units: pd.Index
    p_screen: np.ndarray
    p_confirmation: np.ndarray
    p_screen_adjusted: bool = False

    @classmethod
    def from_inputs(
        cls,
        p_screen: Any,
        p_confirmation: Any,
        tx2gene: Any,
        p_screen_adjusted: bool = False,
    ) -> "StageWiseTxProblem":
        screen_ids, screen = _screen_inputs(p_screen)
        if screen_ids is None:
            raise DimensionMismatch(
                "p_screen must be labelled by unit identifier; "
                "a default RangeIndex counts as unlabelled."
            )

        if isinstance(p_confirmation, pd.DataFrame):
            if p_confirmation.shape[1] != 1:
                raise DimensionMismatch(
                    f"p_confirmation must hold a single column, got {p_confirmation.shape[1]}."
                )
            p_confirmation = p_confirmation.iloc[:, 0]
        tx_ids, values = _split_labels(p_confirmation)
        if tx_ids is None:
            raise DimensionMismatch(
                "p_confirmation must be labelled by sub-unit identifier; "
                "a default RangeIndex counts as unlabelled."
            )
        tx_ids = unique_index("p_confirmation", tx_ids)
        conf = pvalues_1d("p_confirmation", values)

        mapping = _tx2gene_series(tx2gene)
        unmapped = tx_ids.difference(mapping.index)
        if len(unmapped):
            raise DimensionMismatch(
                f"Sub-units missing from tx2gene: {preview(unmapped)}."
            )
        owners = pd.Index(mapping.reindex(tx_ids).to_numpy().astype(str))

        unscreened = pd.Index(owners.unique()).difference(screen_ids)
        if len(unscreened):
            raise MissingUnit(
                f"Units without a screening p-value: {preview(unscreened)}. "
                "Filter p_confirmation and tx2gene before construction."
            )
        empty = screen_ids.difference(owners)
        if len(empty):
            raise DimensionMismatch(
                f"Screened units without any sub-unit in p_confirmation: {preview(empty)}."
            )

        return cls(
            unit_ids=screen_ids,
            subunit_ids=tx_ids,
            subunit_units=owners,
            p_screen=_frozen(screen),
            p_confirmation=_frozen(conf),
            p_screen_adjusted=bool(p_screen_adjusted),
        )

    @property
    def n_units(self) -> int:
        return int(self.p_screen.size)

    @property
    def n_subunits(self) -> int:
        return int(self.p_confirmation.size)

    def unit_members(self) -> dict[str, np.ndarray]:
        """Positions of each unit's sub-units, keyed in screening order."""
        positions = pd.Series(np.arange(self.n_subunits), index=self.subunit_units)
        grouped = positions.groupby(level=0, sort=False)
        members = {str(k): v.to_numpy() for k, v in grouped}
        return {str(u): members[str(u)] for u in self.unit_ids}

    def screen_series(self) -> pd.Series:
        return pd.Series(self.p_screen.copy(), index=self.unit_ids.copy(), name="pScreen")

    def confirmation_series(self) -> pd.Series:
        return pd.Series(
            self.p_confirmation.copy(), index=self.subunit_ids.copy(), name="pConfirmation"
        )

    def tx2gene(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"transcript": self.subunit_ids.to_numpy(), "gene": self.subunit_units.to_numpy()}
        )
