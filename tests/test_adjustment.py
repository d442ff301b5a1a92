from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from stagewise import (
    InvalidAdjustment,
    InvalidAlpha,
    Method,
    StageWiseConfig,
    StageWiseProblem,
    StageWiseTxProblem,
    adjust,
    adjust_with_config,
)
from stagewise.exceptions import StageWiseError


def _problem(**kwargs) -> StageWiseProblem:
    screen = pd.Series({"A": 0.001, "B": 0.2, "C": 0.5})
    conf = pd.DataFrame(
        {"c1": [0.001, 0.3, 0.6], "c2": [0.01, 0.4, 0.7]},
        index=["A", "B", "C"],
    )
    return StageWiseProblem.from_inputs(screen, conf, **kwargs)


def _as_float(frame: pd.DataFrame) -> np.ndarray:
    return frame.to_numpy(dtype=float, na_value=np.nan)


def test_non_screened_units_are_masked():
    result = adjust(_problem(), method="holm", alpha=0.05)
    adjusted = result.adjusted
    assert list(adjusted.columns) == ["padjScreen", "c1", "c2"]
    assert np.allclose(_as_float(adjusted[["padjScreen"]]).ravel(), [0.003, 0.3, 0.5])
    assert adjusted.loc[["B", "C"], ["c1", "c2"]].isna().all().all()
    assert not adjusted.loc["A"].isna().any()
    assert np.allclose(_as_float(adjusted.loc[["A"], ["c1", "c2"]]).ravel(), [0.006, 0.03])
    assert result.n_screened == 1
    assert np.isclose(result.alpha_adjusted, 0.05 / 3)


def test_significance_matrix():
    result = adjust(_problem(), method="holm", alpha=0.05)
    sig = result.significance
    assert sig.loc["A"].tolist() == [1, 1, 1]
    assert sig.loc["B"].tolist() == [0, 0, 0]
    assert sig.loc["C"].tolist() == [0, 0, 0]


def test_pre_adjusted_screening_values_pass_through():
    problem = _problem(p_screen_adjusted=True)
    result = adjust(problem, method="none", alpha=0.05)
    assert np.allclose(_as_float(result.adjusted[["padjScreen"]]).ravel(), [0.001, 0.2, 0.5])


def test_bounds_monotonicity_and_masking_on_random_data():
    rng = np.random.default_rng(11)
    n_units, k = 60, 4
    screen = np.concatenate([rng.uniform(0, 1e-3, 20), rng.uniform(0, 1, n_units - 20)])
    conf = rng.uniform(0, 0.1, size=(n_units, k))
    problem = StageWiseProblem.from_inputs(screen, conf)
    for method, adjustment in (
        ("none", None),
        ("holm", None),
        ("dtu", None),
        ("user", [4.0, 3.0, 3.0, 1.0]),
    ):
        result = adjust(problem, method=method, alpha=0.05, adjustment=adjustment)
        q = _as_float(result.adjusted[["padjScreen"]]).ravel()
        adj = _as_float(result.adjusted.iloc[:, 1:])
        for i in range(n_units):
            if q[i] > 0.05:
                assert np.all(np.isnan(adj[i]))
                continue
            order = np.argsort(conf[i], kind="mergesort")
            assert np.all(np.diff(adj[i][order]) >= -1e-12)
            assert np.all(adj[i] >= conf[i])
            assert np.all(adj[i] <= 1.0)


def test_missing_confirmation_values_stay_missing():
    conf = pd.DataFrame({"c1": [0.001, 0.3], "c2": [np.nan, 0.4]}, index=["A", "B"])
    problem = StageWiseProblem.from_inputs({"A": 0.001, "B": 0.002}, conf, allow_na=True)
    result = adjust(problem, method="holm", alpha=0.05)
    assert pd.isna(result.adjusted.loc["A", "c2"])
    assert result.significance.loc["A", "c2"] == 0
    assert result.significance.loc["A", "c1"] == 1


def test_rerun_is_identical_and_alpha_change_builds_new_result():
    problem = _problem()
    first = adjust(problem, method="holm", alpha=0.05)
    again = adjust(problem, method="holm", alpha=0.05)
    pd.testing.assert_frame_equal(first.adjusted, again.adjusted)
    pd.testing.assert_frame_equal(first.significance, again.significance)

    snapshot = first.adjusted.copy()
    looser = adjust(problem, method="holm", alpha=0.4)
    assert looser is not first
    assert looser.n_screened == 2
    assert not pd.isna(looser.adjusted.loc["B", "c1"])
    pd.testing.assert_frame_equal(first.adjusted, snapshot)
    assert first.alpha == 0.05


def test_user_adjustment_length_is_checked():
    with pytest.raises(InvalidAdjustment):
        adjust(_problem(), method="user", alpha=0.05, adjustment=[1.0])
    with pytest.raises(InvalidAdjustment):
        adjust(_problem(), method="user", alpha=0.05)


def test_adjustment_ignored_for_other_methods(caplog):
    caplog.set_level(logging.WARNING, logger="stagewise")
    result = adjust(_problem(), method="holm", alpha=0.05, adjustment=[1.0])
    assert result.method is Method.HOLM
    assert "only used with method='user'" in caplog.text


@pytest.mark.parametrize("alpha", [0.0, 1.0, -0.1, 2.0, "x"])
def test_invalid_alpha(alpha):
    with pytest.raises(InvalidAlpha):
        adjust(_problem(), method="holm", alpha=alpha)


def test_unknown_method_and_problem_type():
    with pytest.raises(ValueError, match="Unknown method"):
        adjust(_problem(), method="bonferroni", alpha=0.05)
    with pytest.raises(TypeError):
        adjust(object(), method="holm", alpha=0.05)


def test_errors_are_value_errors():
    assert issubclass(InvalidAlpha, StageWiseError)
    assert issubclass(StageWiseError, ValueError)


def test_no_unit_passes_screening():
    problem = StageWiseProblem.from_inputs({"A": 0.5, "B": 0.9}, np.array([[0.01], [0.02]]))
    result = adjust(problem, method="holm", alpha=0.05)
    assert result.n_screened == 0
    assert result.alpha_adjusted == 0.0
    assert result.adjusted["hypothesis_1"].isna().all()
    assert result.significance.to_numpy().sum() == 0


def test_parallel_loop_matches_serial():
    rng = np.random.default_rng(3)
    problem = StageWiseProblem.from_inputs(rng.uniform(0, 0.01, 40), rng.uniform(0, 0.2, (40, 3)))
    serial = adjust(problem, method="holm", alpha=0.05)
    threaded = adjust(problem, method="holm", alpha=0.05, n_jobs=4)
    pd.testing.assert_frame_equal(serial.adjusted, threaded.adjusted)


def test_logger_reports_screening(caplog):
    logger = logging.getLogger("test_stagewise")
    caplog.set_level(logging.INFO, logger="test_stagewise")
    adjust(_problem(), method="holm", alpha=0.05, logger=logger)
    assert "1 of 3 units pass" in caplog.text


def _tx_problem() -> StageWiseTxProblem:
    screen = pd.Series({"g1": 0.001, "g2": 0.001, "g3": 0.9})
    conf = pd.Series({"t1": 0.01, "t2": 0.02, "t3": 0.5, "t4": 0.001, "t5": 0.2, "t6": 0.3})
    tx2gene = pd.DataFrame(
        {
            "transcript": ["t1", "t2", "t3", "t4", "t5", "t6"],
            "gene": ["g1", "g1", "g1", "g2", "g3", "g3"],
        }
    )
    return StageWiseTxProblem.from_inputs(screen, conf, tx2gene)


def test_tx_dtu_adjustment():
    result = adjust(_tx_problem(), method="dtu", alpha=0.05)
    adjusted = result.adjusted
    assert list(adjusted.columns) == ["geneID", "txID", "gene", "transcript"]
    assert list(adjusted.index) == ["t1", "t2", "t3", "t4", "t5", "t6"]
    assert np.isclose(result.alpha_adjusted, 0.05 * 2 / 3)

    tx = adjusted["transcript"]
    assert np.allclose(tx.loc[["t1", "t2", "t3"]].to_numpy(dtype=float), [0.015, 0.03, 0.75])
    assert pd.isna(tx.loc["t4"])
    assert tx.loc[["t5", "t6"]].isna().all()
    assert np.allclose(adjusted["gene"].to_numpy(dtype=float), [0.0015] * 4 + [0.9] * 2)

    sig = result.significance
    assert sig["transcript"].tolist() == [1, 1, 0, 0, 0, 0]
    assert sig["gene"].tolist() == [1, 1, 1, 1, 0, 0]


def test_tx_holm_tests_single_subunit_units():
    result = adjust(_tx_problem(), method="holm", alpha=0.05)
    assert np.isclose(float(result.adjusted.loc["t4", "transcript"]), 0.0015)
    assert result.significance.loc["t4", "transcript"] == 1


def test_tx_user_adjustment_uses_largest_unit():
    with pytest.raises(InvalidAdjustment):
        adjust(_tx_problem(), method="user", alpha=0.05, adjustment=[1.0, 1.0])
    result = adjust(_tx_problem(), method="user", alpha=0.05, adjustment=[1.0, 1.0, 1.0])
    assert np.isclose(float(result.adjusted.loc["t1", "transcript"]), 0.015)


def test_adjust_with_config():
    cfg = StageWiseConfig(alpha=0.05, method="holm")
    result = adjust_with_config(_problem(), cfg)
    expected = adjust(_problem(), method="holm", alpha=0.05)
    pd.testing.assert_frame_equal(result.adjusted, expected.adjusted)


def test_result_tables_cannot_be_mutated():
    result = adjust(_problem(), method="holm", alpha=0.05)
    before = result.adjusted
    table = result.adjusted
    table.iloc[:, :] = 0.0
    sig = result.significance
    sig.iloc[:, :] = 1
    pd.testing.assert_frame_equal(result.adjusted, before)
    assert result.significance.loc["C"].tolist() == [0, 0, 0]
    with pytest.raises(AttributeError):
        result.adjusted = table

    tx = adjust(_tx_problem(), method="dtu", alpha=0.05)
    tx.adjusted.loc["t1", "transcript"] = 1.0
    assert np.isclose(float(tx.adjusted.loc["t1", "transcript"]), 0.015)
