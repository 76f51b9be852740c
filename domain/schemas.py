"""Pydantic models and parser for span-annotation model outputs."""

import logging
import re
from collections.abc import Collection

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

NONE_IDENTIFIED = "None identified"

_SPAN_LINE = re.compile(
    r"^\s*Span\s+(?P<index>\d+)\s*:\s*(?P<text>.*?)\s*\(\s*Label\s*:\s*(?P<label>[^()]+?)\s*\)\s*$",
    re.IGNORECASE,
)
_QUOTES = "\"'“”‘’"


class SpanAnnotation(BaseModel):
    """Single flagged span returned by the model."""

    index: int = Field(..., ge=1, description="1-based span number as written by the model.")
    text: str = Field(..., min_length=1, description="The span text, quotes stripped.")
    label: str = Field(..., min_length=1, description="Error category assigned to the span.")


class SpanAnnotationResult(BaseModel):
    """All spans parsed from one model answer."""

    spans: list[SpanAnnotation] = Field(default_factory=list)
    none_identified: bool = False


def _is_none_identified(text: str) -> bool:
    return text.strip().rstrip(".").strip().lower() == NONE_IDENTIFIED.lower()


def parse_span_annotations(answer: str, allowed_labels: Collection[str] | None = None) -> SpanAnnotationResult:
    """
    Parse `Span N: <text> (Label: <category>)` lines from a model answer.

    Args:
        answer: Raw model output
        allowed_labels: Optional whitelist; labels are compared case-insensitively

    Returns:
        SpanAnnotationResult; empty with none_identified=True for "None identified"

    Raises:
        ValueError: If the answer has no spans and is not "None identified",
            or a label is outside allowed_labels
    """
    if _is_none_identified(answer):
        return SpanAnnotationResult(none_identified=True)

    allowed = {lbl.strip().lower(): lbl.strip() for lbl in allowed_labels} if allowed_labels else None

    spans: list[SpanAnnotation] = []
    for line in answer.splitlines():
        if not line.strip():
            continue
        m = _SPAN_LINE.match(line)
        if m is None:
            logger.debug("Ignoring non-span line: %r", line)
            continue

        label = m.group("label").strip()
        if allowed is not None:
            if label.lower() not in allowed:
                raise ValueError(f"Unknown span label {label!r}; expected one of {sorted(allowed.values())}")
            label = allowed[label.lower()]

        spans.append(
            SpanAnnotation(
                index=int(m.group("index")),
                text=m.group("text").strip().strip(_QUOTES).strip(),
                label=label,
            )
        )

    if not spans:
        raise ValueError(f"Answer contains no span lines and is not {NONE_IDENTIFIED!r}")

    return SpanAnnotationResult(spans=spans)
