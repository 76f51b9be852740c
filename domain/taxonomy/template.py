"""MQM annotation template models: severities, error taxonomy, template constants."""

from collections.abc import Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

NON_TRANSLATION_KEY = "non_translation"


def _read_only(v: Mapping) -> Mapping:
    # nested dict/list fields would otherwise stay mutable on a frozen model
    return MappingProxyType(dict(v))


class _Described(BaseModel):
    """Base for entries that carry a display name and a description."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    display: str
    description: str

    @field_validator("display", "description")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must be a non-empty string")
        return v


class SeverityLevel(_Described):
    """One selectable severity (e.g. major, minor)."""

    shortcut: str
    color: str

    @field_validator("shortcut")
    @classmethod
    def _single_key(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError(f"shortcut must be a single key, got {v!r}")
        return v


class ErrorSubtype(_Described):
    """Finest-grained error label with its behaviour flags."""

    source_side_only: bool = False
    source_side_ok: bool = False
    needs_note: bool = False
    forced_severity: str | None = None
    override_all_errors: bool = False

    @model_validator(mode="after")
    def _source_flags(self) -> "ErrorSubtype":
        if self.source_side_only and self.source_side_ok:
            raise ValueError("source_side_only and source_side_ok are mutually exclusive")
        return self


class ErrorType(ErrorSubtype):
    """Error category. Without subtypes the category itself is a selectable leaf."""

    subtypes: Mapping[str, ErrorSubtype] = Field(default_factory=dict, validate_default=True)

    @field_validator("subtypes")
    @classmethod
    def _freeze_subtypes(cls, v: Mapping) -> Mapping:
        return _read_only(v)

    @field_serializer("subtypes", mode="wrap")
    def _dump_subtypes(self, v: Mapping, handler: Any) -> Any:
        return handler(dict(v))


class TemplateSettings(BaseModel):
    """Configuration constants consumed by the annotation tool."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    VERSION: str = ""
    SIDE_BY_SIDE: bool = False
    COLLECT_QUALITY_SCORE: bool = False
    TARGET_SIDE_ONLY: bool = False
    MAX_ERRORS: int = Field(default=0, ge=0)  # 0 = no limit
    SKIP_RATINGS_TABLES: bool = False
    ALLOW_SPANS_STARTING_ON_SPACE: bool = False
    FLATTEN_SUBTYPES: bool = False
    USE_PAGE_CONTEXT: bool = False


class ErrorChoice(NamedTuple):
    category: str
    subtype: str | None
    display: str


class AnnotationTemplate(BaseModel):
    """Validated, immutable annotation template."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    severities: Mapping[str, SeverityLevel]
    errors: Mapping[str, ErrorType]
    settings: TemplateSettings = Field(default_factory=TemplateSettings)
    instructions_section_contents: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    instructions_section_order: tuple[str, ...] = ()

    @field_validator("severities", "errors", "instructions_section_contents")
    @classmethod
    def _freeze_mappings(cls, v: Mapping) -> Mapping:
        return _read_only(v)

    @field_serializer("severities", "errors", "instructions_section_contents", mode="wrap")
    def _dump_mappings(self, v: Mapping, handler: Any) -> Any:
        return handler(dict(v))

    @model_validator(mode="after")
    def _validate(self) -> "AnnotationTemplate":
        if not self.severities:
            raise ValueError("template must define at least one severity")
        if not self.errors:
            raise ValueError("template must define at least one error category")

        shortcuts = [s.shortcut for s in self.severities.values()]
        dupes = sorted({s for s in shortcuts if shortcuts.count(s) > 1})
        if dupes:
            raise ValueError(f"duplicate severity shortcuts: {dupes}")

        for cat_key, cat in self.errors.items():
            for sub_key, leaf in [(None, cat), *cat.subtypes.items()]:
                if leaf.forced_severity is not None and leaf.forced_severity not in self.severities:
                    where = cat_key if sub_key is None else f"{cat_key}/{sub_key}"
                    raise ValueError(
                        f"{where}: forced_severity {leaf.forced_severity!r} is not a defined severity "
                        f"(known: {list(self.severities)})"
                    )

        non_translation = self.errors.get(NON_TRANSLATION_KEY)
        if non_translation is not None:
            if not non_translation.override_all_errors:
                raise ValueError(f"{NON_TRANSLATION_KEY} must set override_all_errors: true")
            if non_translation.forced_severity != "major":
                raise ValueError(f"{NON_TRANSLATION_KEY} must set forced_severity: major")

        order = self.instructions_section_order
        if len(order) != len(set(order)):
            raise ValueError("instructions_section_order contains duplicate sections")

        return self

    def get_error(self, category: str, subtype: str | None = None) -> ErrorSubtype:
        """Return the selectable leaf for (category, subtype)."""
        if category not in self.errors:
            raise KeyError(f"Unknown error category: {category!r}")
        cat = self.errors[category]
        if subtype is None:
            if cat.subtypes:
                raise KeyError(f"Error category {category!r} requires a subtype (one of {list(cat.subtypes)})")
            return cat
        if subtype not in cat.subtypes:
            raise KeyError(f"Unknown subtype {subtype!r} for error category {category!r}")
        return cat.subtypes[subtype]

    def iter_error_choices(self) -> Iterator[ErrorChoice]:
        """Yield every selectable (category, subtype) pair in template order."""
        for cat_key, cat in self.errors.items():
            if not cat.subtypes:
                yield ErrorChoice(cat_key, None, cat.display)
                continue
            for sub_key, sub in cat.subtypes.items():
                yield ErrorChoice(cat_key, sub_key, f"{cat.display} / {sub.display}")

    def resolve_severity(self, category: str, subtype: str | None, chosen: str) -> str:
        """Severity actually recorded for an error: the forced one wins over the annotator's choice."""
        leaf = self.get_error(category, subtype)
        if leaf.forced_severity is not None:
            return leaf.forced_severity
        if chosen not in self.severities:
            raise KeyError(f"Unknown severity: {chosen!r}")
        return chosen

    def severity_for_shortcut(self, key: str) -> str:
        for sev_key, sev in self.severities.items():
            if sev.shortcut == key:
                return sev_key
        raise KeyError(f"No severity bound to shortcut {key!r}")

    def effective_errors(self, marked: Sequence[tuple[str, str | None]]) -> list[tuple[str, str | None]]:
        """
        Errors that survive for one text unit.

        An error flagged override_all_errors discards every other error marked on the unit.
        """
        for category, subtype in marked:
            if self.get_error(category, subtype).override_all_errors:
                return [(category, subtype)]
        return list(marked)

    def is_source_side_allowed(self, category: str, subtype: str | None = None) -> bool:
        leaf = self.get_error(category, subtype)
        return leaf.source_side_only or leaf.source_side_ok

    def requires_note(self, category: str, subtype: str | None = None) -> bool:
        return self.get_error(category, subtype).needs_note

    def to_export_dict(self) -> dict:
        """Plain dict in the shape the annotation tool reads (settings inlined at top level)."""
        data = self.model_dump(
            exclude={"name", "settings"},
            exclude_defaults=True,
        )
        # severities/errors are required and never dropped by exclude_defaults
        out: dict = {"severities": data.pop("severities")}
        out.update(self.settings.model_dump())
        out.update(data)
        return out
