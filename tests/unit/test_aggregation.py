import math

import pandas as pd
import pytest

from domain.evaluation import (
    PREFERRED_SOURCE_COL,
    add_aggregate_dataset,
    aggregate_point_estimates,
    derive_preferred_source,
    exclude_rater_types,
    format_ci,
    keep_groups_with_n_raters,
    one_hot,
    summarize,
)
from domain.evaluation.aggregation import format_estimate
from infrastructure.config.models import EQUITYMEDQA_MEMBERS, BootstrapConfig

FAST = BootstrapConfig(n_resamples=200, method="percentile", seed=0)


def _ratings(rows: list[tuple]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=["dataset", "question_id", "rater_id", "rater_type", "bias_presence"])


def test_excluded_rater_types_are_dropped() -> None:
    df = _ratings([("OMAQ", "q1", "r1", "physician", True), ("OMAQ", "q1", "c1", "consumer", False)])

    out = exclude_rater_types(df, ["consumer"])

    assert out["rater_type"].tolist() == ["physician"]
    assert len(df) == 2


def test_rater_count_rule_only_touches_its_dataset() -> None:
    df = _ratings(
        [
            ("Mixed MMQA-OMAQ", "q1", "r1", "physician", True),
            ("Mixed MMQA-OMAQ", "q1", "r2", "physician", False),
            ("Mixed MMQA-OMAQ", "q1", "r3", "physician", True),
            ("Mixed MMQA-OMAQ", "q2", "r1", "physician", True),
            ("Mixed MMQA-OMAQ", "q2", "r2", "physician", True),
            ("OMAQ", "q3", "r1", "physician", False),
        ]
    )

    out = keep_groups_with_n_raters(df, dataset="Mixed MMQA-OMAQ", n_raters=3)

    mixed = out[out["dataset"] == "Mixed MMQA-OMAQ"]
    assert mixed["question_id"].unique().tolist() == ["q1"]
    assert len(mixed) % 3 == 0
    assert (out["dataset"] == "OMAQ").sum() == 1


def test_rater_count_is_per_rater_type() -> None:
    df = _ratings(
        [
            ("Mixed MMQA-OMAQ", "q1", "r1", "physician", True),
            ("Mixed MMQA-OMAQ", "q1", "r2", "physician", True),
            ("Mixed MMQA-OMAQ", "q1", "r3", "physician", True),
            ("Mixed MMQA-OMAQ", "q1", "e1", "health_equity_expert", True),
        ]
    )

    out = keep_groups_with_n_raters(df, dataset="Mixed MMQA-OMAQ", n_raters=3)

    assert set(out["rater_type"]) == {"physician"}


def test_aggregate_dataset_is_union_of_members() -> None:
    rows = [(name, f"q{i}", "r1", "physician", i % 2 == 0) for i, name in enumerate(EQUITYMEDQA_MEMBERS)]
    rows.append(("Mixed MMQA-OMAQ", "qm", "r1", "physician", True))
    df = _ratings(rows)

    out = add_aggregate_dataset(df, "EquityMedQA", EQUITYMEDQA_MEMBERS)

    agg = out[out["dataset"] == "EquityMedQA"]
    assert len(agg) == len(EQUITYMEDQA_MEMBERS)
    assert len(out) == len(df) + len(agg)
    assert "qm" not in set(agg["question_id"])


def test_aggregate_dataset_cannot_be_built_twice() -> None:
    df = add_aggregate_dataset(_ratings([("OMAQ", "q1", "r1", "physician", True)]), "EquityMedQA", ["OMAQ"])

    with pytest.raises(ValueError, match="already present"):
        add_aggregate_dataset(df, "EquityMedQA", ["OMAQ"])


def test_preferred_source_from_exclusive_flags() -> None:
    df = pd.DataFrame({"a": [True, False, False, None], "b": [False, True, False, None]})

    out = derive_preferred_source(df, "a", "b", "Med-PaLM 2", "Med-PaLM")

    assert out[PREFERRED_SOURCE_COL].tolist() == ["Med-PaLM 2", "Med-PaLM", "no preference", "no preference"]
    assert list(out[PREFERRED_SOURCE_COL].cat.categories) == ["Med-PaLM 2", "Med-PaLM", "no preference"]


def test_preferred_source_rejects_both_flags() -> None:
    df = pd.DataFrame({"a": [True], "b": [True]})

    with pytest.raises(ValueError, match="both"):
        derive_preferred_source(df, "a", "b", "Med-PaLM 2", "Med-PaLM")


def test_one_hot_keeps_unobserved_categories() -> None:
    df = derive_preferred_source(pd.DataFrame({"a": [True, True], "b": [False, False]}), "a", "b", "X", "Y")

    out, cols = one_hot(df, PREFERRED_SOURCE_COL)

    assert cols == ["preferred_source=X", "preferred_source=Y", "preferred_source=no preference"]
    assert out[cols[0]].all() and not out[cols[1]].any()


def test_point_estimate_treats_flags_as_fractions() -> None:
    df = _ratings(
        [
            ("OMAQ", "q1", "r1", "physician", True),
            ("OMAQ", "q2", "r1", "physician", False),
            ("OMAQ", "q3", "r1", "physician", True),
        ]
    )
    df["bias_presence"] = df["bias_presence"].astype("boolean")

    means = aggregate_point_estimates(df, ["dataset", "rater_type"], ["bias_presence"])

    assert means.loc[("OMAQ", "physician"), "bias_presence"] == pytest.approx(2 / 3)


def test_summary_formats_estimate_with_interval() -> None:
    flags = [True, False, True] * 10
    df = pd.DataFrame({"dataset": "OMAQ", "rater_type": "physician", "bias_presence": flags})

    rs = summarize(df, ["dataset", "rater_type"], ["bias_presence"], FAST)

    cell = rs.formatted.loc[("OMAQ", "physician"), "bias_presence"]
    assert cell.startswith("0.667 (")
    low = rs.ci_low.loc[("OMAQ", "physician"), "bias_presence"]
    high = rs.ci_high.loc[("OMAQ", "physician"), "bias_presence"]
    assert low <= 2 / 3 <= high
    assert rs.n.loc[("OMAQ", "physician")] == 30


def test_constant_group_has_no_interval() -> None:
    df = pd.DataFrame({"dataset": ["OMAQ"] * 4, "rater_type": ["physician"] * 4, "bias_presence": [True] * 4})

    rs = summarize(df, ["dataset", "rater_type"], ["bias_presence"], FAST)

    assert rs.formatted.loc[("OMAQ", "physician"), "bias_presence"] == "1.000"
    assert math.isnan(rs.ci_low.loc[("OMAQ", "physician"), "bias_presence"])


def test_single_group_column() -> None:
    df = pd.DataFrame({"dataset": ["A", "A", "B", "B"], "flag": [True, False, False, False]})

    rs = summarize(df, ["dataset"], ["flag"], FAST)

    assert rs.mean.loc["A", "flag"] == 0.5
    assert rs.formatted.loc["B", "flag"] == "0.000"


def test_long_frame_has_one_row_per_group_and_column() -> None:
    df = pd.DataFrame(
        {
            "dataset": ["A", "A", "B", "B"],
            "rater_type": "physician",
            "x": [True, False, True, True],
            "y": [False, False, True, False],
        }
    )

    long = summarize(df, ["dataset", "rater_type"], ["x", "y"], FAST).to_long_frame()

    assert len(long) == 4
    assert list(long.columns) == ["dataset", "rater_type", "column", "mean", "ci_low", "ci_high", "formatted", "n"]
    assert set(long["n"]) == {2}


def test_format_helpers() -> None:
    assert format_ci(0.25, 0.5) == "(0.250, 0.500)"
    assert format_ci(float("nan"), 0.5) == ""
    assert format_estimate(0.5, 0.25, 0.75, decimals=2) == "0.50 (0.25, 0.75)"
    assert format_estimate(float("nan"), 0.1, 0.2) == ""


def test_three_rating_group_under_default_bootstrap() -> None:
    df = pd.DataFrame({"dataset": "OMAQ", "rater_type": "physician", "bias_presence": [True, False, True]})

    rs = summarize(df, ["dataset", "rater_type"], ["bias_presence"], BootstrapConfig())

    assert rs.mean.loc[("OMAQ", "physician"), "bias_presence"] == pytest.approx(2 / 3)
    assert rs.formatted.loc[("OMAQ", "physician"), "bias_presence"].startswith("0.667")
