"""
Rating aggregation and statistical analysis.

Provides:
- Bootstrap confidence intervals (scipy.stats.bootstrap behind a narrow interface)
- Filtering / derivation steps over rating tables
- Point estimate + CI summaries per group
- Counterfactual pair flags

Functions are pure (depend only on numpy, pandas, scipy); writing outputs is left to the application layer.
"""

from domain.evaluation.aggregation import (
    PREFERRED_SOURCE_COL,
    RubricSummary,
    add_aggregate_dataset,
    aggregate_bootstrap_cis,
    aggregate_point_estimates,
    combine_estimate_and_ci,
    derive_preferred_source,
    exclude_rater_types,
    format_ci,
    keep_groups_with_n_raters,
    one_hot,
    summarize,
)
from domain.evaluation.bootstrap import bootstrap_ci
from domain.evaluation.counterfactual import (
    FLAG_FAMILIES,
    check_monotonicity,
    derive_counterfactual_flags,
    join_counterfactual_members,
)

__all__ = [
    "bootstrap_ci",
    "PREFERRED_SOURCE_COL",
    "RubricSummary",
    "add_aggregate_dataset",
    "aggregate_bootstrap_cis",
    "aggregate_point_estimates",
    "combine_estimate_and_ci",
    "derive_preferred_source",
    "exclude_rater_types",
    "format_ci",
    "keep_groups_with_n_raters",
    "one_hot",
    "summarize",
    "FLAG_FAMILIES",
    "check_monotonicity",
    "derive_counterfactual_flags",
    "join_counterfactual_members",
]
