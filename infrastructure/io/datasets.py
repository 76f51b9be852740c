"""Dataset loading utilities."""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import pandas as pd

from infrastructure.config.models import InputConfig, InputMode, Rubric

logger = logging.getLogger(__name__)

_TRUE = {"true", "t", "yes", "y", "1", "1.0"}
_FALSE = {"false", "f", "no", "n", "0", "0.0"}


def read_table(path: Path, sheet_name: str | None = None) -> pd.DataFrame:
    """
    Read tabular data file (Excel or CSV) based on file extension.

    Supported formats:
    - Excel: .xlsx, .xls (first sheet unless sheet_name is given)
    - CSV: .csv

    Args:
        path: Path to data file
        sheet_name: Sheet to read from a workbook

    Returns:
        pandas DataFrame

    Raises:
        ValueError: If file format is not supported
        FileNotFoundError: If file does not exist
        KeyError: If the requested sheet is not in the workbook
    """
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = path.suffix.lower()

    if suffix in [".xlsx", ".xls"]:
        if sheet_name is None:
            return pd.read_excel(path)
        sheets = pd.ExcelFile(path).sheet_names
        if sheet_name not in sheets:
            raise KeyError(f"Sheet '{sheet_name}' not found in {path}. Available: {sheets}")
        return pd.read_excel(path, sheet_name=sheet_name)
    elif suffix == ".csv":
        return pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Supported formats: .xlsx, .xls, .csv")


def coerce_bool_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """
    Convert rating flags to pandas' nullable boolean dtype.

    Accepts booleans, 0/1 and common yes/no spellings; blanks become <NA>.

    Raises:
        KeyError: If a column is missing
        ValueError: If a column holds a value that is not a recognisable flag
    """
    out = df.copy()
    for col in columns:
        if col not in out.columns:
            raise KeyError(f"Required column '{col}' not found. Available: {list(out.columns)}")

        s = out[col]
        if pd.api.types.is_bool_dtype(s):
            out[col] = s.astype("boolean")
            continue

        def _parse(v: object, col: str = col) -> object:
            if v is None or (isinstance(v, float) and pd.isna(v)) or v is pd.NA:
                return pd.NA
            if isinstance(v, bool):
                return v
            key = str(v).strip().lower()
            if key == "":
                return pd.NA
            if key in _TRUE:
                return True
            if key in _FALSE:
                return False
            raise ValueError(f"Column '{col}' has a non-boolean value: {v!r}")

        out[col] = s.map(_parse).astype("boolean")
    return out


def require_columns(df: pd.DataFrame, columns: Sequence[str], what: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"{what} is missing required columns {missing}. Available: {list(df.columns)}")


def load_rating_tables(cfg: InputConfig, rubrics: Sequence[Rubric]) -> dict[Rubric, pd.DataFrame]:
    """
    Load the raw rating tables for the requested rubrics.

    CSV mode reads one file per rubric from cfg.input_dir; workbook mode reads one named
    sheet per rubric from a single workbook.
    """
    tables: dict[Rubric, pd.DataFrame] = {}
    for rubric in rubrics:
        if cfg.mode is InputMode.WORKBOOK:
            path = cfg.workbook_path
            df = read_table(path, sheet_name=cfg.sheet_name(rubric))
        else:
            path = cfg.csv_path(rubric)
            df = read_table(path)
        logger.info("Loaded %s ratings from %s: %d rows, %d columns", rubric.value, path, *df.shape)
        tables[rubric] = df
    return tables
