"""
Configuration management: models, loading, and validation.

Handles:
- AnalysisConfig: Main analysis configuration
- Input, bootstrap and per-rubric settings
- Annotation template loading from YAML (with `extends` variants)

The loader module performs file I/O; models are pure Pydantic classes.
"""

from infrastructure.config.loader import (
    load_analysis_config,
    load_template_config,
)
from infrastructure.config.models import (
    AggregateDatasetConfig,
    # Main config
    AnalysisConfig,
    # Bootstrap
    BootstrapConfig,
    CounterfactualConfig,
    InputConfig,
    # Enums
    InputMode,
    PairwiseConfig,
    RaterCountFilterConfig,
    Rubric,
    # Column mapping
    RubricColumnsConfig,
)

__all__ = [
    # Main config (most commonly used)
    "AnalysisConfig",
    "load_analysis_config",
    # Enums
    "InputMode",
    "Rubric",
    # Sections
    "InputConfig",
    "BootstrapConfig",
    "RubricColumnsConfig",
    "RaterCountFilterConfig",
    "AggregateDatasetConfig",
    "PairwiseConfig",
    "CounterfactualConfig",
    # Loaders
    "load_template_config",
]
