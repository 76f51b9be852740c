"""Rubric workflows: preprocess each rating table and summarise it with bootstrap CIs."""

import logging
from dataclasses import dataclass, field

import pandas as pd
from opik import track

from application.constants import BIAS_FAMILY, PAIR_FAMILY, PREFERENCE_FAMILY
from domain.evaluation import (
    PREFERRED_SOURCE_COL,
    RubricSummary,
    add_aggregate_dataset,
    check_monotonicity,
    derive_counterfactual_flags,
    derive_preferred_source,
    exclude_rater_types,
    join_counterfactual_members,
    keep_groups_with_n_raters,
    one_hot,
    summarize,
)
from infrastructure.config.models import AnalysisConfig, Rubric
from infrastructure.io import coerce_bool_columns, require_columns
from infrastructure.observability import rubric_log_context

logger = logging.getLogger(__name__)


@dataclass
class RubricResult:
    """Summaries produced for one rubric, keyed by family (bias, preference, one_biased, ...)."""

    rubric: Rubric
    n_rows: int
    summaries: dict[str, RubricSummary]
    warnings: list[str] = field(default_factory=list)


def prepare_ratings(
    df: pd.DataFrame,
    cfg: AnalysisConfig,
    flag_cols: list[str],
    what: str,
    extra_cols: tuple[str, ...] = (),
) -> pd.DataFrame:
    """
    Shared preprocessing: check columns, coerce flags, drop excluded rater types,
    then apply the exactly-n-raters rule to its dataset.
    """
    cols = cfg.columns
    require_columns(
        df,
        [cols.question_id, cols.rater_id, cols.rater_type, cols.dataset, *extra_cols, *flag_cols],
        what,
    )
    out = coerce_bool_columns(df, flag_cols)
    out = exclude_rater_types(out, cfg.excluded_rater_types, cols.rater_type)

    rule = cfg.rater_count_filter
    if rule.enabled:
        out = keep_groups_with_n_raters(
            out,
            dataset=rule.dataset,
            n_raters=rule.n_raters,
            dataset_col=cols.dataset,
            question_col=cols.question_id,
            rater_type_col=cols.rater_type,
            rater_id_col=cols.rater_id,
        )
    logger.debug("%s after preprocessing: %d rows", what, len(out))
    return out


def _with_aggregate_dataset(df: pd.DataFrame, cfg: AnalysisConfig) -> pd.DataFrame:
    agg = cfg.aggregate_dataset
    if not agg.enabled:
        return df
    return add_aggregate_dataset(df, name=agg.name, members=agg.members, dataset_col=cfg.columns.dataset)


@track(name="Bias.ratings.independent", type="general", capture_input=False, capture_output=False)
def run_independent_analysis(df: pd.DataFrame, cfg: AnalysisConfig) -> RubricResult:
    """Share of ratings flagging each bias dimension, per (dataset, rater type)."""
    bias_cols = cfg.columns.bias_columns
    data = prepare_ratings(df, cfg, bias_cols, "independent ratings")
    data = _with_aggregate_dataset(data, cfg)

    summary = summarize(data, cfg.columns.group_cols, bias_cols, cfg.bootstrap)
    return RubricResult(Rubric.INDEPENDENT, len(data), {BIAS_FAMILY: summary})


@track(name="Bias.ratings.pairwise", type="general", capture_input=False, capture_output=False)
def run_pairwise_analysis(df: pd.DataFrame, cfg: AnalysisConfig) -> RubricResult:
    """Share of ratings preferring each source (or neither), per (dataset, rater type, dimension)."""
    pw = cfg.pairwise
    flag_cols = [pw.source_a_preferred_col, pw.source_b_preferred_col]
    data = prepare_ratings(df, cfg, flag_cols, "pairwise ratings", extra_cols=(pw.dimension_col,))
    data = _with_aggregate_dataset(data, cfg)

    data = derive_preferred_source(
        data,
        source_a_col=pw.source_a_preferred_col,
        source_b_col=pw.source_b_preferred_col,
        source_a=pw.source_a,
        source_b=pw.source_b,
    )
    data, indicator_cols = one_hot(data, PREFERRED_SOURCE_COL)

    group_cols = [*cfg.columns.group_cols, pw.dimension_col]
    summary = summarize(data, group_cols, indicator_cols, cfg.bootstrap)
    return RubricResult(Rubric.PAIRWISE, len(data), {PREFERENCE_FAMILY: summary})


@track(name="Bias.ratings.counterfactual", type="general", capture_input=False, capture_output=False)
def run_counterfactual_analysis(
    pairs: pd.DataFrame,
    members: pd.DataFrame,
    cfg: AnalysisConfig,
) -> RubricResult:
    """
    Counterfactual pairs: how often one, one or more, or both member answers are biased.

    Member ratings come from the independent rubric table.
    """
    cols = cfg.columns
    cf = cfg.counterfactual
    bias_cols = cols.bias_columns

    pair_data = prepare_ratings(
        pairs,
        cfg,
        cf.pair_columns,
        "counterfactual pairs",
        extra_cols=(cf.question_1_col, cf.question_2_col),
    )

    require_columns(members, [cols.question_id, *cf.member_join_keys, *bias_cols], "member ratings")
    member_data = coerce_bool_columns(members, bias_cols)
    member_data = exclude_rater_types(member_data, cfg.excluded_rater_types, cols.rater_type)

    joined = join_counterfactual_members(
        pair_data,
        member_data,
        bias_cols,
        question_col=cols.question_id,
        question_1_col=cf.question_1_col,
        question_2_col=cf.question_2_col,
        join_keys=cf.member_join_keys,
    )
    flags, families = derive_counterfactual_flags(joined, bias_cols, both_rule=cf.both_biased_rule)

    warnings: list[str] = []
    violations = check_monotonicity(flags, bias_cols)
    if violations:
        msg = f"'both biased' set without 'one or more biased' for columns: {violations}"
        logger.error(msg)
        warnings.append(msg)
    if cf.both_biased_rule == "legacy":
        warnings.append("both_biased uses the legacy rule (same test as one_biased)")

    data = _with_aggregate_dataset(flags, cfg)

    summaries = {
        family: summarize(data, cols.group_cols, family_cols, cfg.bootstrap) for family, family_cols in families.items()
    }
    if cf.pair_columns:
        summaries[PAIR_FAMILY] = summarize(data, cols.group_cols, cf.pair_columns, cfg.bootstrap)

    return RubricResult(Rubric.COUNTERFACTUAL, len(data), summaries, warnings)


@track(
    name="Bias.ratings.analysis",
    type="general",
    metadata={"task": "bias_rating_bootstrap"},
    capture_input=False,
    capture_output=False,
)
def run_all(tables: dict[Rubric, pd.DataFrame], cfg: AnalysisConfig) -> dict[Rubric, RubricResult]:
    """
    Run every rubric listed in cfg.rubrics over the loaded tables.

    Raises:
        KeyError: If a required table was not loaded
    """
    missing = [r.value for r in cfg.tables_needed if r not in tables]
    if missing:
        raise KeyError(f"Rating tables not loaded: {missing}")

    results: dict[Rubric, RubricResult] = {}
    for rubric in cfg.rubrics:
        with rubric_log_context(rubric.value):
            logger.info("Running %s analysis (n_resamples=%d)...", rubric.value, cfg.bootstrap.n_resamples)

            if rubric is Rubric.INDEPENDENT:
                results[rubric] = run_independent_analysis(tables[rubric], cfg)
            elif rubric is Rubric.PAIRWISE:
                results[rubric] = run_pairwise_analysis(tables[rubric], cfg)
            else:
                results[rubric] = run_counterfactual_analysis(tables[rubric], tables[Rubric.INDEPENDENT], cfg)

            logger.info("Finished %s analysis: %d rows", rubric.value, results[rubric].n_rows)

    return results
