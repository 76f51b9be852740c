"""Prompt construction utilities (pure functions)."""

import logging
from typing import Any

from application.constants import SPAN_PROMPT_PLACEHOLDERS
from infrastructure.prompting import PromptObj, find_placeholders

logger = logging.getLogger(__name__)


def build_span_annotation_prompt(
    prompt: PromptObj,
    source_document: str,
    summary: str,
    score: int | float,
) -> str:
    """
    Fill the span-annotation template with a source document, its summary and a numeric score.

    Args:
        prompt: PromptObj holding the template
        source_document: Text the summary was written from
        summary: Summary to annotate
        score: Numeric quality score shown to the model

    Returns:
        Rendered prompt string

    Raises:
        ValueError: If the template lacks a placeholder, or the inputs are empty
        TypeError: If score is not numeric
    """
    missing = [p for p in SPAN_PROMPT_PLACEHOLDERS if p not in find_placeholders(prompt.prompt)]
    if missing:
        raise ValueError(
            f"Prompt template missing required placeholders: {missing}. "
            f"Template must contain {', '.join('{{' + p + '}}' for p in SPAN_PROMPT_PLACEHOLDERS)}"
        )
    if not source_document.strip():
        raise ValueError("source_document must not be empty")
    if not summary.strip():
        raise ValueError("summary must not be empty")
    if isinstance(score, bool) or not isinstance(score, int | float):
        raise TypeError(f"score must be numeric, got {type(score).__name__}")

    rendered: Any = prompt.format(
        source_document=source_document.strip(),
        summary=summary.strip(),
        score=score,
    )
    logger.debug("Rendered span-annotation prompt (%d chars)", len(str(rendered)))

    if isinstance(rendered, str):
        return rendered

    raise TypeError(f"Prompt.format() returned unsupported type: {type(rendered)}")
