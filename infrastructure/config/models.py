"""Configuration models (Pydantic classes)."""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from infrastructure.constants import DATA_DIR, OUTPUT_ROOT, PROMPTS_DIR, TEMPLATES_DIR

NO_PREFERENCE = "no preference"

EQUITYMEDQA_MEMBERS = [
    "OMAQ",
    "EHAI",
    "FBRT-Manual",
    "FBRT-LLM",
    "TRINDS",
    "CC-Manual",
    "CC-LLM",
]

DEFAULT_BIAS_COLUMNS = [
    "bias_presence",
    "inaccurate_for_axes_of_identity",
    "not_inclusive",
    "stereotypical_characterization",
    "omits_systemic_explanations",
    "fails_to_challenge_bias",
    "withholding_of_opportunities",
    "other_bias",
]


class InputMode(str, Enum):
    """Where the three rating tables come from."""

    CSV = "csv"
    WORKBOOK = "workbook"


class Rubric(str, Enum):
    """Rating protocols."""

    INDEPENDENT = "independent"
    PAIRWISE = "pairwise"
    COUNTERFACTUAL = "counterfactual"


class InputConfig(BaseModel):
    """Input location: three CSV files or one workbook with three named sheets."""

    mode: InputMode = InputMode.CSV
    input_dir: Path = Field(default_factory=lambda: DATA_DIR)

    # CSV mode
    independent_file: str = "independent.csv"
    pairwise_file: str = "pairwise.csv"
    counterfactual_file: str = "counterfactual.csv"

    # Workbook mode
    workbook_file: str = "ratings.xlsx"
    independent_sheet: str = "independent"
    pairwise_sheet: str = "pairwise"
    counterfactual_sheet: str = "counterfactual"

    def csv_path(self, rubric: Rubric) -> Path:
        return self.input_dir / getattr(self, f"{rubric.value}_file")

    def sheet_name(self, rubric: Rubric) -> str:
        return getattr(self, f"{rubric.value}_sheet")

    @property
    def workbook_path(self) -> Path:
        return self.input_dir / self.workbook_file


class BootstrapConfig(BaseModel):
    """
    Configuration for bootstrap confidence intervals.

    The seed is passed explicitly to every bootstrap call.
    """

    seed: int | None = 42
    n_resamples: int = Field(default=1000, gt=0)
    confidence_level: float = Field(default=0.95, gt=0.0, lt=1.0)
    method: Literal["BCa", "percentile", "basic"] = "BCa"
    decimals: int = Field(default=3, ge=0)


class RubricColumnsConfig(BaseModel):
    """Column names shared by all rating tables."""

    question_id: str = "question_id"
    rater_id: str = "rater_id"
    rater_type: str = "rater_type"
    dataset: str = "dataset"
    bias_columns: list[str] = Field(default_factory=lambda: list(DEFAULT_BIAS_COLUMNS))

    @property
    def group_cols(self) -> list[str]:
        return [self.dataset, self.rater_type]


class RaterCountFilterConfig(BaseModel):
    """Keep only (question, rater type) groups with exactly `n_raters` raters in one dataset."""

    enabled: bool = True
    dataset: str = "Mixed MMQA-OMAQ"
    n_raters: int = Field(default=3, gt=0)


class AggregateDatasetConfig(BaseModel):
    """Derived dataset label built as the union of several named datasets."""

    enabled: bool = True
    name: str = "EquityMedQA"
    members: list[str] = Field(default_factory=lambda: list(EQUITYMEDQA_MEMBERS))

    @model_validator(mode="after")
    def _validate(self) -> "AggregateDatasetConfig":
        if self.enabled and not self.members:
            raise ValueError("aggregate_dataset.members must not be empty")
        if self.name in self.members:
            raise ValueError(f"aggregate_dataset.name '{self.name}' must not be one of its members")
        return self


class PairwiseConfig(BaseModel):
    """Pairwise rubric: one row per (question, rater, dimension) with two exclusive preference flags."""

    dimension_col: str = "dimension"
    source_a_preferred_col: str = "answer_1_preferred"
    source_b_preferred_col: str = "answer_2_preferred"
    source_a: str = "Med-PaLM 2"
    source_b: str = "Med-PaLM"

    @model_validator(mode="after")
    def _validate(self) -> "PairwiseConfig":
        names = {self.source_a, self.source_b, NO_PREFERENCE}
        if len(names) != 3:
            raise ValueError(f"pairwise sources must be distinct and differ from '{NO_PREFERENCE}'")
        if self.source_a_preferred_col == self.source_b_preferred_col:
            raise ValueError("pairwise preference columns must differ")
        return self


class CounterfactualConfig(BaseModel):
    """Counterfactual rubric: pair rows joined to their two member ratings."""

    question_1_col: str = "question_1_id"
    question_2_col: str = "question_2_id"
    # Keys (besides the question id) used to match a pair row with its member ratings
    member_join_keys: list[str] = Field(default_factory=lambda: ["rater_id", "rater_type"])
    # Pair-level boolean columns summarised as-is
    pair_columns: list[str] = Field(default_factory=list)
    # "legacy": "both" uses the same sum == 1 test as "one";
    # "all" is the logical AND of the two members.
    both_biased_rule: Literal["legacy", "all"] = "legacy"


class AnalysisConfig(BaseModel):
    """
    Runtime configuration.
    - Loaded from analysis.yaml
    - Validated by the configuration loader
    - Consumed by the rubric runners and the CLI
    """

    input: InputConfig = Field(default_factory=InputConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    columns: RubricColumnsConfig = Field(default_factory=RubricColumnsConfig)
    pairwise: PairwiseConfig = Field(default_factory=PairwiseConfig)
    counterfactual: CounterfactualConfig = Field(default_factory=CounterfactualConfig)

    excluded_rater_types: list[str] = Field(
        default_factory=lambda: ["consumer"],
        description="Rater types dropped before any aggregation.",
    )
    rater_count_filter: RaterCountFilterConfig = Field(default_factory=RaterCountFilterConfig)
    aggregate_dataset: AggregateDatasetConfig = Field(default_factory=AggregateDatasetConfig)

    rubrics: list[Rubric] = Field(default_factory=lambda: list(Rubric))
    output_root: Path = Field(default_factory=lambda: OUTPUT_ROOT)

    # Annotation template + span prompt locations (used by the template/prompt subcommands)
    templates_dir: Path = Field(default_factory=lambda: TEMPLATES_DIR)
    prompts_root: Path = Field(default_factory=lambda: PROMPTS_DIR)
    prompts_register_in_opik: bool = Field(
        default=False,
        description="Register prompts in Opik library. If False, load from disk only.",
    )
    span_labels: list[str] = Field(
        default_factory=list,
        description="Allowed span labels when parsing model answers. Empty means any label.",
    )

    @model_validator(mode="after")
    def _validate(self) -> "AnalysisConfig":
        bias = self.columns.bias_columns
        if not bias:
            raise ValueError("columns.bias_columns must list at least one column")
        if len(bias) != len(set(bias)):
            raise ValueError("columns.bias_columns contains duplicates")

        reserved = {
            self.columns.question_id,
            self.columns.rater_id,
            self.columns.rater_type,
            self.columns.dataset,
        }
        clash = reserved & set(bias)
        if clash:
            raise ValueError(f"columns.bias_columns overlaps id/label columns: {sorted(clash)}")

        if not self.rubrics:
            raise ValueError("rubrics must list at least one rubric to run")
        if len(self.rubrics) != len(set(self.rubrics)):
            raise ValueError("rubrics contains duplicates")

        return self

    @property
    def tables_needed(self) -> list[Rubric]:
        """Rubric tables to load; counterfactual member ratings come from the independent table."""
        needed = set(self.rubrics)
        if Rubric.COUNTERFACTUAL in needed:
            needed.add(Rubric.INDEPENDENT)
        return [r for r in Rubric if r in needed]
