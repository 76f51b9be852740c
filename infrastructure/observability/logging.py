"""
Logging setup with contextvars-based run metadata.

Every record carries a short run tag and the rubric being analysed, so lines from the
independent, pairwise and counterfactual passes can be told apart in one run.log.
Python warnings (scipy's degenerate-resample warnings, pandas deprecations) are routed
into the same handlers.
"""

import contextvars
import hashlib
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

cv_run_tag = contextvars.ContextVar("run_tag", default="-")
cv_rubric = contextvars.ContextVar("rubric", default="-")

# not printed on each line; written to summary.json
cv_run_id_full = contextvars.ContextVar("run_id_full", default="-")

# Libraries that log at INFO/DEBUG on every request or workbook read
_NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "openpyxl")


def make_run_tag(run_id_full: str, length: int = 8) -> str:
    """Short, stable tag for a run id (BLAKE2s digest prefix)."""
    h = hashlib.blake2s(run_id_full.encode("utf-8"), digest_size=8).hexdigest()
    return h[:length]


class ContextInjectFilter(logging.Filter):
    """Copy the current run tag and rubric onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run = cv_run_tag.get() or "-"
        record.rubric = cv_rubric.get() or "-"
        return True


def set_log_context(*, run_id_full: str) -> None:
    """Set the run shown in log lines (as a short tag) and written to summary.json."""
    cv_run_id_full.set(str(run_id_full))
    cv_run_tag.set(make_run_tag(str(run_id_full)))


def get_log_context() -> dict[str, str]:
    return {
        "run_tag": str(cv_run_tag.get() or "-"),
        "run_id_full": str(cv_run_id_full.get() or "-"),
        "rubric": str(cv_rubric.get() or "-"),
    }


@contextmanager
def rubric_log_context(rubric: str) -> Iterator[None]:
    """Tag log lines with `rubric` for the duration of the block."""
    token = cv_rubric.set(str(rubric))
    try:
        yield
    finally:
        cv_rubric.reset(token)


def configure_logging(
    *,
    log_file: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
    capture_warnings: bool = True,
) -> None:
    """
    Install console (and optionally rotating file) handlers on the root logger.

    Calling it again replaces the previous handlers, which is how `analyze` adds its
    per-run log file after the CLI has set up console logging.

    Args:
        log_file: Path to the run log; console only when None
        console_level: Minimum level for console output
        file_level: Minimum level for file output
        max_bytes: Max log file size before rotation
        backup_count: Number of rotated files to keep
        capture_warnings: Route `warnings.warn` output through logging ("py.warnings")
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    console_fmt = "%(asctime)s [%(levelname)s] r=%(run)s rubric=%(rubric)s | %(message)s"
    file_fmt = "%(asctime)s [%(levelname)s] %(name)s | r=%(run)s rubric=%(rubric)s | %(message)s"

    ctx_filter = ContextInjectFilter()

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter(console_fmt, datefmt="%H:%M:%S"))
    ch.addFilter(ctx_filter)
    root.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(file_fmt, datefmt="%Y-%m-%d %H:%M:%S"))
        fh.addFilter(ctx_filter)
        root.addHandler(fh)

    logging.captureWarnings(capture_warnings)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("opik").setLevel(logging.INFO)

    logging.getLogger(__name__).debug(
        "Logging configured (console_level=%s, file=%s)",
        logging.getLevelName(console_level),
        log_file if log_file is not None else "-",
    )
