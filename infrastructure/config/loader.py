"""Configuration loading from YAML files."""

import logging
from pathlib import Path
from typing import Any

import yaml
from yaml.constructor import ConstructorError

from domain.taxonomy.loader import merge_template_overrides, parse_template_config
from domain.taxonomy.template import AnnotationTemplate
from infrastructure.config.models import AnalysisConfig

logger = logging.getLogger(__name__)


class UniqueKeySafeLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen: set[Any] = set()
            for key_node, _ in node.value:
                key = self.construct_object(key_node, deep=deep)
                if key in seen:
                    raise ConstructorError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"found duplicate key {key!r}",
                        key_node.start_mark,
                    )
                seen.add(key)
        return super().construct_mapping(node, deep=deep)


def _load_yaml(path: Path, *, unique_keys: bool = False) -> dict[str, Any]:
    """Load YAML file and return as dict."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        if unique_keys:
            data = yaml.load(f, Loader=UniqueKeySafeLoader)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Expected YAML dict in {path}, got {type(data)}")

    return data


def _resolve_template_dict(path: Path, chain: tuple[Path, ...] = ()) -> dict[str, Any]:
    """Load a template YAML and fold in its `extends` parents (paths relative to the child file)."""
    resolved = path.resolve()
    if resolved in chain:
        cycle = " -> ".join(str(p) for p in (*chain, resolved))
        raise ValueError(f"Template extends cycle: {cycle}")

    data = _load_yaml(path, unique_keys=True)
    parent_ref = data.pop("extends", None)
    if parent_ref is None:
        return data

    parent_path = path.parent / str(parent_ref)
    logger.debug("Template %s extends %s", path, parent_path)
    parent = _resolve_template_dict(parent_path, (*chain, resolved))
    # a variant never inherits its parent's name
    parent.pop("name", None)
    return merge_template_overrides(parent, data)


def load_template_config(path: Path) -> AnnotationTemplate:
    """
    Load an annotation template from YAML, resolving `extends` chains.

    This function handles file I/O, then delegates parsing to domain layer.
    The template name defaults to the file stem.
    """
    data = _resolve_template_dict(path)
    return parse_template_config(data, name=data.get("name") or path.stem)


def load_analysis_config(path: Path) -> AnalysisConfig:
    """
    Load analysis.yaml into a validated AnalysisConfig.

    Unknown top-level keys are rejected so that typos do not silently fall back to defaults.
    """
    data = _load_yaml(path)

    unknown = set(data) - set(AnalysisConfig.model_fields)
    if unknown:
        raise ValueError(f"analysis config {path} has unknown keys: {sorted(unknown)}")

    cfg = AnalysisConfig.model_validate(data)
    logger.debug("Loaded analysis config from %s", path)
    return cfg
