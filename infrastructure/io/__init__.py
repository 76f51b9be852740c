"""I/O utilities: filesystem operations and dataset loading."""

from infrastructure.io.datasets import coerce_bool_columns, load_rating_tables, read_table, require_columns
from infrastructure.io.fs import ensure_exists, read_text, write_text

__all__ = [
    "ensure_exists",
    "read_text",
    "write_text",
    "read_table",
    "coerce_bool_columns",
    "load_rating_tables",
    "require_columns",
]
