"""
Infrastructure layer: External dependencies and I/O boundaries.

Contains adapters for:
- Configuration loading (YAML analysis config, annotation templates)
- Rating table loading (CSV files or one workbook)
- Prompt management (disk, Opik)
- Observability (logging)

This is the only layer that performs I/O operations.
"""

# Most commonly used - exposed at top level for convenience
from infrastructure.config import (
    AnalysisConfig,
    BootstrapConfig,
    Rubric,
    load_analysis_config,
    load_template_config,
)

__all__ = [
    "load_analysis_config",
    "load_template_config",
    "AnalysisConfig",
    "BootstrapConfig",
    "Rubric",
]
