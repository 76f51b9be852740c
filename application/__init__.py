"""
Application layer: Use cases and workflow orchestration.

This layer coordinates between domain logic and infrastructure,
implementing the rubric analyses, template export and span prompt workflows.
"""

from application.prompting import build_span_annotation_prompt
from application.reporting import log_analysis_summary
from application.rubrics import (
    RubricResult,
    run_all,
    run_counterfactual_analysis,
    run_independent_analysis,
    run_pairwise_analysis,
)
from application.serialize import write_rubric_outputs
from application.templates import export_template, log_template_summary, write_template_export

__all__ = [
    # Main workflows
    "run_all",
    "run_independent_analysis",
    "run_pairwise_analysis",
    "run_counterfactual_analysis",
    "RubricResult",
    # Outputs
    "write_rubric_outputs",
    "log_analysis_summary",
    # Templates
    "export_template",
    "write_template_export",
    "log_template_summary",
    # Prompting
    "build_span_annotation_prompt",
]
