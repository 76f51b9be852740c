"""Application-level constants."""

# Output filenames
SUMMARY_FILENAME = "summary.json"
CONFIG_SNAPSHOT_FILENAME = "config.resolved.json"
LOG_FILENAME = "run.log"

# Per-summary CSV name: <rubric>[__<family>]_summary.csv / _formatted.csv
LONG_TABLE_SUFFIX = "_summary.csv"
WIDE_TABLE_SUFFIX = "_formatted.csv"

# Summary family names
BIAS_FAMILY = "bias"
PREFERENCE_FAMILY = "preference"
PAIR_FAMILY = "pair"

# Prompt names (prompts/<name>.txt)
SPAN_ANNOTATION_PROMPT = "span-annotation"
SPAN_PROMPT_PLACEHOLDERS = ("source_document", "summary", "score")

# Template export
TEMPLATE_JS_GLOBAL = "antheaTemplates"
