import json
from pathlib import Path

import pandas as pd
import pytest

from application.rubrics import run_all, run_counterfactual_analysis, run_independent_analysis, run_pairwise_analysis
from application.serialize import write_rubric_outputs
from infrastructure.config.models import AnalysisConfig, BootstrapConfig, Rubric, RubricColumnsConfig

BIAS = ["bias_presence", "other_bias"]


@pytest.fixture
def cfg() -> AnalysisConfig:
    return AnalysisConfig(
        bootstrap=BootstrapConfig(n_resamples=100, method="percentile", seed=1),
        columns=RubricColumnsConfig(bias_columns=BIAS),
    )


@pytest.fixture
def independent() -> pd.DataFrame:
    rows = [
        ("OMAQ", "q1", "r1", "physician", "yes", "no"),
        ("OMAQ", "q2", "r1", "physician", "no", "no"),
        ("OMAQ", "q3", "r1", "physician", "yes", "yes"),
        ("OMAQ", "q4", "r1", "physician", "no", ""),
        ("OMAQ", "q1", "c1", "consumer", "yes", "yes"),
        ("TRINDS", "t1", "r2", "physician", "no", "no"),
        ("TRINDS", "t2", "r2", "physician", "yes", "no"),
        ("Mixed MMQA-OMAQ", "m1", "r1", "physician", "yes", "no"),
        ("Mixed MMQA-OMAQ", "m1", "r2", "physician", "no", "no"),
        ("Mixed MMQA-OMAQ", "m1", "r3", "physician", "yes", "no"),
        ("Mixed MMQA-OMAQ", "m2", "r1", "physician", "yes", "no"),
        ("Mixed MMQA-OMAQ", "m2", "r2", "physician", "yes", "no"),
        ("Mixed MMQA-OMAQ", "m2", "c1", "consumer", "yes", "no"),
    ]
    return pd.DataFrame(rows, columns=["dataset", "question_id", "rater_id", "rater_type", *BIAS])


@pytest.fixture
def pairwise() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "dataset": "OMAQ",
            "question_id": ["q1", "q2", "q3"],
            "rater_id": "r1",
            "rater_type": "physician",
            "dimension": "bias",
            "answer_1_preferred": [True, False, False],
            "answer_2_preferred": [False, True, False],
        }
    )


@pytest.fixture
def counterfactual() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "dataset": "CC-Manual",
            "question_id": ["p1", "p2"],
            "question_1_id": ["q1", "q3"],
            "question_2_id": ["q2", "q1"],
            "rater_id": "r1",
            "rater_type": "physician",
        }
    )


def test_independent_analysis(cfg: AnalysisConfig, independent: pd.DataFrame) -> None:
    result = run_independent_analysis(independent, cfg)
    summary = result.summaries["bias"]

    groups = set(summary.mean.index)
    assert ("EquityMedQA", "physician") in groups
    assert not any(rater_type == "consumer" for _, rater_type in groups)

    # two-rater m2 group is dropped; EquityMedQA = OMAQ + TRINDS
    assert summary.n.loc[("Mixed MMQA-OMAQ", "physician")] == 3
    assert summary.n.loc[("EquityMedQA", "physician")] == 6
    assert summary.mean.loc[("OMAQ", "physician"), "bias_presence"] == pytest.approx(0.5)
    # blank ratings are skipped, not counted as "no"
    assert summary.mean.loc[("OMAQ", "physician"), "other_bias"] == pytest.approx(1 / 3)


def test_pairwise_analysis(cfg: AnalysisConfig, pairwise: pd.DataFrame) -> None:
    result = run_pairwise_analysis(pairwise, cfg)
    mean = result.summaries["preference"].mean

    key = ("OMAQ", "physician", "bias")
    assert mean.loc[key, "preferred_source=Med-PaLM 2"] == pytest.approx(1 / 3)
    assert mean.loc[key, "preferred_source=Med-PaLM"] == pytest.approx(1 / 3)
    assert mean.loc[key, "preferred_source=no preference"] == pytest.approx(1 / 3)
    assert ("EquityMedQA", "physician", "bias") in mean.index


def test_pairwise_rejects_rows_preferring_both(cfg: AnalysisConfig, pairwise: pd.DataFrame) -> None:
    pairwise.loc[0, "answer_2_preferred"] = True

    with pytest.raises(ValueError, match="exclusive"):
        run_pairwise_analysis(pairwise, cfg)


def test_counterfactual_analysis(cfg: AnalysisConfig, independent: pd.DataFrame, counterfactual: pd.DataFrame) -> None:
    result = run_counterfactual_analysis(counterfactual, independent, cfg)

    assert set(result.summaries) == {"one_biased", "one_or_more_biased", "both_biased"}
    one = result.summaries["one_biased"].mean
    # p1: q1 yes / q2 no -> one biased; p2: q3 yes / q1 yes -> not exactly one
    assert one.loc[("CC-Manual", "physician"), "bias_presence__one_biased"] == pytest.approx(0.5)
    assert any("legacy" in w for w in result.warnings)


def test_counterfactual_strict_both_rule(
    cfg: AnalysisConfig, independent: pd.DataFrame, counterfactual: pd.DataFrame
) -> None:
    cfg = cfg.model_copy(update={"counterfactual": cfg.counterfactual.model_copy(update={"both_biased_rule": "all"})})

    result = run_counterfactual_analysis(counterfactual, independent, cfg)

    both = result.summaries["both_biased"].mean
    assert both.loc[("CC-Manual", "physician"), "bias_presence__both_biased"] == pytest.approx(0.5)
    assert result.warnings == []


def test_run_all_requires_tables(cfg: AnalysisConfig, pairwise: pd.DataFrame) -> None:
    with pytest.raises(KeyError, match="independent"):
        run_all({Rubric.PAIRWISE: pairwise}, cfg)


def test_run_all_and_write_outputs(
    cfg: AnalysisConfig,
    independent: pd.DataFrame,
    pairwise: pd.DataFrame,
    counterfactual: pd.DataFrame,
    tmp_path: Path,
) -> None:
    tables = {Rubric.INDEPENDENT: independent, Rubric.PAIRWISE: pairwise, Rubric.COUNTERFACTUAL: counterfactual}

    results = run_all(tables, cfg)
    paths, summary_path = write_rubric_outputs(cfg, results, tmp_path / "run")

    names = {p.name for p in paths}
    assert "independent_summary.csv" in names
    assert "pairwise_formatted.csv" in names
    assert "counterfactual__both_biased_summary.csv" in names

    summary = json.loads(summary_path.read_text(encoding="utf-8"))
    assert summary["bootstrap"]["seed"] == 1
    assert summary["rubrics"]["independent"]["tables"] == {"bias": "independent_summary.csv"}
    assert summary["rubrics"]["counterfactual"]["warnings"]

    long = pd.read_csv(tmp_path / "run" / "independent_summary.csv")
    assert {"dataset", "rater_type", "column", "mean", "formatted", "n"} <= set(long.columns)


@pytest.mark.parametrize("runner", [run_independent_analysis, run_pairwise_analysis, run_counterfactual_analysis, run_all])
def test_rubric_runners_are_traced(runner) -> None:
    # opik.track keeps the undecorated function on the wrapper
    assert callable(getattr(runner, "__wrapped__", None))
