from pathlib import Path

# Repo-root conventional directories/files (overrideable via analysis.yaml)
CONFIG_DIR = Path("configs")
ANALYSIS_FILE = CONFIG_DIR / "analysis.yaml"
TEMPLATES_DIR = CONFIG_DIR / "templates"
DEFAULT_TEMPLATE_FILE = TEMPLATES_DIR / "mqm-quality-score.yaml"

PROMPTS_DIR = Path("prompts")
DATA_DIR = Path("dataset")
OUTPUT_ROOT = Path("outputs")
