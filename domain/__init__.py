"""
Domain layer: Business logic with minimal external dependencies.

Contains:
- schemas: Pydantic models and parser for span annotations
- taxonomy: Annotation template models and validation
- evaluation: Bootstrap aggregation of rating tables
"""

from domain.schemas import SpanAnnotation, SpanAnnotationResult, parse_span_annotations

__all__ = [
    "SpanAnnotation",
    "SpanAnnotationResult",
    "parse_span_annotations",
]
