"""Filesystem helpers shared by the loaders and writers."""

from pathlib import Path


def ensure_exists(path: Path, what: str) -> None:
    """
    Raise FileNotFoundError naming `what` if `path` does not exist.

    Args:
        path: Path to check
        what: Human-readable name used in the error (e.g. "span-annotation prompt")
    """
    if not path.exists():
        raise FileNotFoundError(f"Missing {what} at: {path}")


def read_text(path: Path) -> str:
    """UTF-8 file contents with surrounding whitespace stripped."""
    return path.read_text(encoding="utf-8").strip()


def write_text(path: Path, text: str) -> Path:
    """
    Write UTF-8 text, creating parent folders as needed.

    Returns:
        The written path
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
