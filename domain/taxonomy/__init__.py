"""
Annotation template: severities, error taxonomy and validation.

This module handles MQM template operations.
All functions in this module are pure (no file I/O).
"""

from domain.taxonomy.loader import merge_template_overrides, parse_template_config
from domain.taxonomy.template import (
    AnnotationTemplate,
    ErrorChoice,
    ErrorSubtype,
    ErrorType,
    SeverityLevel,
    TemplateSettings,
)

__all__ = [
    "AnnotationTemplate",
    "ErrorChoice",
    "ErrorSubtype",
    "ErrorType",
    "SeverityLevel",
    "TemplateSettings",
    "merge_template_overrides",
    "parse_template_config",
]
