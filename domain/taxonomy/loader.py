"""Parse annotation template configuration from YAML dicts."""

import copy
from typing import Any

from domain.taxonomy.template import AnnotationTemplate, TemplateSettings

_TEMPLATE_SECTIONS = {
    "severities",
    "errors",
    "instructions_section_contents",
    "instructions_section_order",
}


def merge_template_overrides(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge a variant's overrides onto its parent template dict.

    Mappings merge recursively, scalars and lists replace, and a None value deletes the key.
    Neither input is mutated.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_template_overrides(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_template_config(data: dict[str, Any], name: str | None = None) -> AnnotationTemplate:
    """
    Parse a pre-loaded (and already merged) YAML dict into an AnnotationTemplate.

    This is a pure function - it does NOT perform file I/O. Template constants may be
    given at the top level (as the annotation tool writes them) or under `settings`.

    Args:
        data: Dictionary from yaml loading, with any `extends` chain already resolved
        name: Template name; falls back to data["name"]

    Returns:
        Validated AnnotationTemplate

    Raises:
        ValueError: If required keys are missing or entries are invalid
    """
    template_name = name or data.get("name")
    if not template_name:
        raise ValueError("template name is required (pass name= or set 'name' in the YAML)")

    for key in ("severities", "errors"):
        if not isinstance(data.get(key), dict):
            raise ValueError(f"template '{template_name}': '{key}' must be a mapping")

    settings_raw = dict(data.get("settings") or {})
    for key in TemplateSettings.model_fields:
        if key in data:
            settings_raw[key] = data[key]

    unknown = set(data) - _TEMPLATE_SECTIONS - set(TemplateSettings.model_fields) - {"name", "settings", "extends"}
    if unknown:
        raise ValueError(f"template '{template_name}': unknown keys {sorted(unknown)}")

    return AnnotationTemplate(
        name=str(template_name),
        severities=data["severities"],
        errors=data["errors"],
        settings=TemplateSettings(**settings_raw),
        instructions_section_contents=data.get("instructions_section_contents") or {},
        instructions_section_order=data.get("instructions_section_order") or [],
    )
