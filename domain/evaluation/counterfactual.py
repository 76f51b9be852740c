"""Counterfactual pairs: join member ratings and derive pair-level bias flags."""

import logging
from collections.abc import Sequence

import pandas as pd

logger = logging.getLogger(__name__)

ONE_BIASED = "one_biased"
ONE_OR_MORE_BIASED = "one_or_more_biased"
BOTH_BIASED = "both_biased"
FLAG_FAMILIES = (ONE_BIASED, ONE_OR_MORE_BIASED, BOTH_BIASED)


def flag_col(col: str, family: str) -> str:
    return f"{col}__{family}"


def join_counterfactual_members(
    pairs: pd.DataFrame,
    members: pd.DataFrame,
    value_cols: Sequence[str],
    question_col: str = "question_id",
    question_1_col: str = "question_1_id",
    question_2_col: str = "question_2_id",
    join_keys: Sequence[str] = ("rater_id", "rater_type"),
) -> pd.DataFrame:
    """
    Attach the two member ratings to every counterfactual pair row.

    Member columns are suffixed `_1` (matched on question_1_col) and `_2` (question_2_col).
    Pairs without both member ratings are dropped.

    Raises:
        KeyError: If a join column is missing
        pandas.errors.MergeError: If a member rating is not unique per (question, join keys)
    """
    member_cols = [question_col, *join_keys, *value_cols]
    missing = [c for c in member_cols if c not in members.columns]
    if missing:
        raise KeyError(f"Member ratings are missing columns: {missing}")
    missing = [c for c in (question_1_col, question_2_col, *join_keys) if c not in pairs.columns]
    if missing:
        raise KeyError(f"Counterfactual pairs are missing columns: {missing}")

    member_view = members[member_cols]
    joined = pairs
    for suffix, id_col in (("_1", question_1_col), ("_2", question_2_col)):
        renamed = member_view.rename(columns={question_col: id_col, **{c: f"{c}{suffix}" for c in value_cols}})
        joined = joined.merge(renamed, on=[id_col, *join_keys], how="inner", validate="many_to_one")

    dropped = len(pairs) - len(joined)
    if dropped:
        logger.warning("Dropped %d counterfactual pair rows without both member ratings", dropped)
    return joined.reset_index(drop=True)


def derive_counterfactual_flags(
    joined: pd.DataFrame,
    value_cols: Sequence[str],
    both_rule: str = "legacy",
) -> tuple[pd.DataFrame, dict[str, list[str]]]:
    """
    Derive, for every bias column, whether one / one or more / both member answers are biased.

    - one_biased: exactly one member biased (sum of the two flags == 1)
    - one_or_more_biased: at least one member biased
    - both_biased: with both_rule="legacy" the same sum == 1 test as one_biased;
      with both_rule="all" both members biased

    A missing member flag makes all three flags False for that row.

    Returns:
        Tuple of (DataFrame with flag columns added, family -> flag column names)
    """
    if both_rule not in ("legacy", "all"):
        raise ValueError(f"Unknown both_rule: {both_rule!r}")
    if both_rule == "legacy":
        logger.warning(
            "Counterfactual 'both biased' uses the legacy rule (identical to 'exactly one biased'); "
            "set counterfactual.both_biased_rule: all for logical AND"
        )

    out = joined.copy()
    families: dict[str, list[str]] = {family: [] for family in FLAG_FAMILIES}
    for col in value_cols:
        pair = out[[f"{col}_1", f"{col}_2"]].astype(float)
        total = pair.sum(axis=1, min_count=2)

        out[flag_col(col, ONE_BIASED)] = total == 1
        out[flag_col(col, ONE_OR_MORE_BIASED)] = total >= 1
        out[flag_col(col, BOTH_BIASED)] = (total == 1) if both_rule == "legacy" else (total == 2)

        for family in FLAG_FAMILIES:
            families[family].append(flag_col(col, family))

    return out, families


def check_monotonicity(flags: pd.DataFrame, value_cols: Sequence[str]) -> list[str]:
    """Bias columns where 'both biased' is set on a row that is not 'one or more biased'."""
    violations = []
    for col in value_cols:
        both = flags[flag_col(col, BOTH_BIASED)]
        any_ = flags[flag_col(col, ONE_OR_MORE_BIASED)]
        if (both & ~any_).any():
            violations.append(col)
    return violations
