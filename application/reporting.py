"""Human-readable summary logging."""

import logging
from pathlib import Path

from application.rubrics import RubricResult
from infrastructure.config import Rubric

logger = logging.getLogger(__name__)


def log_analysis_summary(
    results: dict[Rubric, RubricResult],
    output_paths: list[Path],
    summary_path: Path,
) -> None:
    """
    Log a concise, human-readable analysis summary.

    Args:
        results: Rubric results keyed by rubric
        output_paths: CSV files written for the run
        summary_path: Path to summary.json
    """
    logger.info("=== Analysis Summary ===")

    for rubric, result in results.items():
        logger.info("--- %s (%d rows) ---", rubric.value, result.n_rows)
        for family, rs in result.summaries.items():
            n_empty_ci = int(rs.ci_low.isna().to_numpy().sum())
            logger.info(
                "%s: %d groups x %d columns (%d cells without a CI)",
                family,
                len(rs.mean),
                len(rs.value_cols),
                n_empty_ci,
            )
            logger.debug("%s formatted estimates:\n%s", family, rs.formatted)
        for warning in result.warnings:
            logger.warning("%s: %s", rubric.value, warning)

    logger.info("--- Artifacts ---")
    for path in output_paths:
        logger.info("Table: %s", path)
    logger.info("Summary JSON: %s", summary_path)
