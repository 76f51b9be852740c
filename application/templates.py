"""Annotation template export for the external annotation tool."""

import json
import logging
from pathlib import Path
from typing import Literal

from application.constants import TEMPLATE_JS_GLOBAL
from domain.taxonomy import AnnotationTemplate
from infrastructure.io import write_text

logger = logging.getLogger(__name__)

ExportFormat = Literal["js", "json"]


def export_template(template: AnnotationTemplate, fmt: ExportFormat = "js") -> str:
    """
    Serialise a template.

    "js" produces the assignment the annotation tool loads:
        antheaTemplates['<name>'] = {...};
    "json" produces the bare object.
    """
    body = json.dumps(template.to_export_dict(), ensure_ascii=False, indent=2)
    if fmt == "json":
        return body + "\n"
    if fmt == "js":
        return f"{TEMPLATE_JS_GLOBAL}[{json.dumps(template.name)}] = {body};\n"
    raise ValueError(f"Unsupported export format: {fmt!r}")


def write_template_export(template: AnnotationTemplate, out_path: Path, fmt: ExportFormat = "js") -> Path:
    write_text(out_path, export_template(template, fmt))
    logger.info("Exported template %s (%s) to %s", template.name, fmt, out_path)
    return out_path


def log_template_summary(template: AnnotationTemplate) -> None:
    logger.info(
        "Template %s (version %s): %d severities, %d categories, %d selectable errors",
        template.name,
        template.settings.VERSION or "-",
        len(template.severities),
        len(template.errors),
        sum(1 for _ in template.iter_error_choices()),
    )
    for key, sev in template.severities.items():
        logger.info("Severity %s [%s]: %s", key, sev.shortcut, sev.display)
    for choice in template.iter_error_choices():
        logger.debug("Error %s/%s: %s", choice.category, choice.subtype or "-", choice.display)
