"""
Rating-table aggregation: filtering, derived labels, point estimates and bootstrap CIs.

All functions return new DataFrames and never mutate their inputs.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from domain.evaluation.bootstrap import bootstrap_ci
from infrastructure.config.models import NO_PREFERENCE, BootstrapConfig

logger = logging.getLogger(__name__)

PREFERRED_SOURCE_COL = "preferred_source"


def exclude_rater_types(
    df: pd.DataFrame,
    excluded: Sequence[str],
    rater_type_col: str = "rater_type",
) -> pd.DataFrame:
    """Drop rows whose rater type is listed in `excluded`."""
    if not excluded:
        return df.reset_index(drop=True)
    mask = df[rater_type_col].isin(list(excluded))
    logger.debug("Excluding %d rows with rater types %s", int(mask.sum()), list(excluded))
    return df.loc[~mask].reset_index(drop=True)


def keep_groups_with_n_raters(
    df: pd.DataFrame,
    dataset: str,
    n_raters: int = 3,
    dataset_col: str = "dataset",
    question_col: str = "question_id",
    rater_type_col: str = "rater_type",
    rater_id_col: str = "rater_id",
) -> pd.DataFrame:
    """
    For one dataset, keep only (question, rater type) groups rated by exactly `n_raters` raters.

    Rows of every other dataset pass through unchanged.
    """
    in_dataset = df[dataset_col] == dataset
    counts = df.groupby([dataset_col, question_col, rater_type_col])[rater_id_col].transform("nunique")
    keep = ~in_dataset | (counts == n_raters)
    dropped = int((~keep).sum())
    if dropped:
        logger.info("Dropped %d '%s' rows from groups without exactly %d raters", dropped, dataset, n_raters)
    return df.loc[keep].reset_index(drop=True)


def add_aggregate_dataset(
    df: pd.DataFrame,
    name: str,
    members: Sequence[str],
    dataset_col: str = "dataset",
) -> pd.DataFrame:
    """
    Append a copy of the member datasets' rows relabelled as `name`.

    The original rows are kept, so each member row is counted both under its own label and under `name`.
    """
    if (df[dataset_col] == name).any():
        raise ValueError(f"Dataset label '{name}' already present; refusing to build it again")

    agg = df.loc[df[dataset_col].isin(list(members))].copy()
    missing = sorted(set(members) - set(agg[dataset_col].unique()))
    if missing:
        logger.warning("Aggregate dataset '%s': no rows for members %s", name, missing)

    agg[dataset_col] = name
    logger.debug("Aggregate dataset '%s' has %d rows", name, len(agg))
    return pd.concat([df, agg], ignore_index=True)


def derive_preferred_source(
    df: pd.DataFrame,
    source_a_col: str,
    source_b_col: str,
    source_a: str,
    source_b: str,
) -> pd.DataFrame:
    """
    Add a categorical `preferred_source` column from two mutually exclusive preference flags.

    Raises:
        ValueError: If any row has both flags set
    """
    a = df[source_a_col].fillna(False).astype(bool)
    b = df[source_b_col].fillna(False).astype(bool)

    both = a & b
    if both.any():
        raise ValueError(
            f"{int(both.sum())} rows set both '{source_a_col}' and '{source_b_col}'; preferences must be exclusive"
        )

    out = df.copy()
    out[PREFERRED_SOURCE_COL] = pd.Categorical(
        np.select([a.to_numpy(), b.to_numpy()], [source_a, source_b], default=NO_PREFERENCE),
        categories=[source_a, source_b, NO_PREFERENCE],
    )
    return out


def one_hot(df: pd.DataFrame, col: str) -> tuple[pd.DataFrame, list[str]]:
    """
    One boolean indicator column per category of `col` (all categories, even unobserved ones).

    Returns:
        Tuple of (DataFrame with indicators added, indicator column names)
    """
    dummies = pd.get_dummies(df[col], prefix=col, prefix_sep="=", dtype=bool)
    return pd.concat([df, dummies], axis=1), list(dummies.columns)


def _as_float(df: pd.DataFrame, value_cols: Sequence[str]) -> pd.DataFrame:
    missing = [c for c in value_cols if c not in df.columns]
    if missing:
        raise KeyError(f"Value columns not found: {missing}")
    return df[list(value_cols)].astype(float)


def aggregate_point_estimates(
    df: pd.DataFrame,
    group_cols: Sequence[str],
    value_cols: Sequence[str],
) -> pd.DataFrame:
    """Arithmetic mean of each value column per group (booleans count as 0/1, NaN skipped)."""
    values = _as_float(df, value_cols)
    return values.groupby([df[c] for c in group_cols], observed=True, sort=True).mean()


def aggregate_bootstrap_cis(
    df: pd.DataFrame,
    group_cols: Sequence[str],
    value_cols: Sequence[str],
    cfg: BootstrapConfig,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Bootstrap CI of the mean of each value column per group.

    Returns:
        Tuple of (lower bounds, upper bounds), both indexed like aggregate_point_estimates
    """
    values = _as_float(df, value_cols)
    grouped = values.groupby([df[c] for c in group_cols], observed=True, sort=True)

    index = grouped.mean().index
    low_df = pd.DataFrame(np.nan, index=index, columns=list(value_cols))
    high_df = pd.DataFrame(np.nan, index=index, columns=list(value_cols))

    for key, group in grouped:
        # grouping by a list always yields tuple keys; a flat index wants the bare value
        loc_key = key[0] if len(group_cols) == 1 else key
        for col in value_cols:
            low, high = bootstrap_ci(
                group[col].to_numpy(),
                statistic=np.mean,
                n_resamples=cfg.n_resamples,
                confidence_level=cfg.confidence_level,
                method=cfg.method,
                seed=cfg.seed,
            )
            low_df.at[loc_key, col] = low
            high_df.at[loc_key, col] = high

    return low_df, high_df


def format_ci(low: float, high: float, decimals: int = 3) -> str:
    """Render a CI as '(low, high)'; a NaN bound yields an empty string."""
    if pd.isna(low) or pd.isna(high):
        return ""
    return f"({low:.{decimals}f}, {high:.{decimals}f})"


def format_estimate(mean: float, low: float, high: float, decimals: int = 3) -> str:
    if pd.isna(mean):
        return ""
    ci = format_ci(low, high, decimals)
    point = f"{mean:.{decimals}f}"
    return f"{point} {ci}" if ci else point


def combine_estimate_and_ci(
    means: pd.DataFrame,
    lows: pd.DataFrame,
    highs: pd.DataFrame,
    decimals: int = 3,
) -> pd.DataFrame:
    """Merge point estimates and CIs into one display string per cell."""
    lows = lows.reindex(index=means.index, columns=means.columns)
    highs = highs.reindex(index=means.index, columns=means.columns)
    out = pd.DataFrame(index=means.index, columns=means.columns, dtype=object)
    for col in means.columns:
        out[col] = [
            format_estimate(m, lo, hi, decimals)
            for m, lo, hi in zip(means[col], lows[col], highs[col], strict=True)
        ]
    return out


@dataclass
class RubricSummary:
    """Per-group point estimates, CI bounds, display strings and group sizes."""

    group_cols: list[str]
    value_cols: list[str]
    mean: pd.DataFrame
    ci_low: pd.DataFrame
    ci_high: pd.DataFrame
    formatted: pd.DataFrame
    n: pd.Series

    def to_long_frame(self) -> pd.DataFrame:
        """One row per (group, value column), convenient for CSV export."""
        parts = {
            "mean": self.mean,
            "ci_low": self.ci_low,
            "ci_high": self.ci_high,
            "formatted": self.formatted,
        }
        long = pd.concat(
            {name: frame.stack(future_stack=True) for name, frame in parts.items()},
            axis=1,
        )
        long.index = long.index.set_names([*self.group_cols, "column"])
        long = long.reset_index()
        n = self.n.rename("n").reset_index()
        return long.merge(n, on=self.group_cols, how="left")


def summarize(
    df: pd.DataFrame,
    group_cols: Sequence[str],
    value_cols: Sequence[str],
    cfg: BootstrapConfig,
) -> RubricSummary:
    """Point estimate + bootstrap CI + formatted string for every (group, value column)."""
    group_cols = list(group_cols)
    value_cols = list(value_cols)

    means = aggregate_point_estimates(df, group_cols, value_cols)
    lows, highs = aggregate_bootstrap_cis(df, group_cols, value_cols, cfg)
    formatted = combine_estimate_and_ci(means, lows, highs, cfg.decimals)
    n = df.groupby(group_cols, observed=True, sort=True).size()

    logger.debug("Summarised %d groups x %d columns", len(means), len(value_cols))
    return RubricSummary(
        group_cols=group_cols,
        value_cols=value_cols,
        mean=means,
        ci_low=lows.reindex(means.index),
        ci_high=highs.reindex(means.index),
        formatted=formatted,
        n=n,
    )
