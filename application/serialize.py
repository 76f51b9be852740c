"""Result serialization utilities."""

import json
import logging
from pathlib import Path

from application.constants import LONG_TABLE_SUFFIX, SUMMARY_FILENAME, WIDE_TABLE_SUFFIX
from application.rubrics import RubricResult
from infrastructure.config import AnalysisConfig, Rubric
from infrastructure.observability import get_log_context

logger = logging.getLogger(__name__)


def _table_stem(rubric: Rubric, family: str, n_families: int) -> str:
    return rubric.value if n_families == 1 else f"{rubric.value}__{family}"


def write_rubric_outputs(
    cfg: AnalysisConfig,
    results: dict[Rubric, RubricResult],
    run_dir: Path,
) -> tuple[list[Path], Path]:
    """
    Write one long CSV (mean, CI bounds, formatted string, n) and one wide formatted CSV per summary,
    plus a summary.json describing the run.

    Returns:
        Tuple of (CSV paths, summary.json path)
    """
    run_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    summary: dict[str, object] = {
        "context": get_log_context(),
        "bootstrap": cfg.bootstrap.model_dump(mode="json"),
        "rubrics": {},
    }

    for rubric, result in results.items():
        tables: dict[str, str] = {}
        for family, rs in result.summaries.items():
            stem = _table_stem(rubric, family, len(result.summaries))

            long_path = run_dir / f"{stem}{LONG_TABLE_SUFFIX}"
            rs.to_long_frame().to_csv(long_path, index=False)

            wide_path = run_dir / f"{stem}{WIDE_TABLE_SUFFIX}"
            rs.formatted.to_csv(wide_path)

            written.extend([long_path, wide_path])
            tables[family] = long_path.name
            logger.debug("Wrote %s and %s", long_path, wide_path)

        summary["rubrics"][rubric.value] = {
            "n_rows": result.n_rows,
            "tables": tables,
            "warnings": list(result.warnings),
        }

    summary_path = run_dir / SUMMARY_FILENAME
    with summary_path.open("w", encoding="utf-8") as f:
        json.dump(summary, f, ensure_ascii=False, indent=2)

    logger.info("Saved %d summary tables and %s", len(written), summary_path)
    return written, summary_path
