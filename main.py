"""
CLI entrypoint for annotation templates, span prompts and bias-rating analysis.

Subcommands:
- analyze: load configs/analysis.yaml, read the rating tables, run the independent,
  pairwise and counterfactual rubric summaries, write CSV tables + summary.json
  to a per-run folder under outputs/, log a human-readable summary
- validate-template: load and validate an annotation template YAML
- export-template: write a template as the annotation tool's JS (or JSON)
- render-prompt: fill the span-annotation prompt with a document, summary and score
- parse-spans: parse a model answer into span annotations (JSON on stdout)
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from opik import track

from application import (
    build_span_annotation_prompt,
    log_analysis_summary,
    log_template_summary,
    run_all,
    write_rubric_outputs,
    write_template_export,
)
from application.constants import (
    CONFIG_SNAPSHOT_FILENAME,
    LOG_FILENAME,
    SPAN_ANNOTATION_PROMPT,
    SPAN_PROMPT_PLACEHOLDERS,
)
from domain.schemas import parse_span_annotations
from infrastructure.config import AnalysisConfig, load_analysis_config, load_template_config
from infrastructure.constants import ANALYSIS_FILE, DEFAULT_TEMPLATE_FILE
from infrastructure.io import ensure_exists, load_rating_tables, read_text, write_text
from infrastructure.observability import configure_logging, make_run_tag, set_log_context
from infrastructure.prompting import PromptManager

logger = logging.getLogger(__name__)

LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
TEMPLATE_ARG_HELP = f"Template YAML (default: <templates_dir>/{DEFAULT_TEMPLATE_FILE.name})"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Annotation template, span prompt and bias-rating analysis tools")
    p.add_argument(
        "--config",
        type=str,
        default=str(ANALYSIS_FILE),
        help="Path to analysis.yaml (default: configs/analysis.yaml). Defaults apply if the file is missing.",
    )
    p.add_argument(
        "--env",
        type=str,
        default=".env",
        help="Path to .env file (default: .env); skipped if missing",
    )
    p.add_argument("--console-level", type=str, default="INFO", choices=LEVELS, help="Console log level")
    p.add_argument("--file-level", type=str, default="DEBUG", choices=LEVELS, help="File log level")

    sub = p.add_subparsers(dest="command", required=True)

    a = sub.add_parser("analyze", help="Run the bootstrap analysis over the rating tables")
    a.add_argument("--input-dir", type=str, default=None, help="Override input.input_dir")
    a.add_argument("--n-resamples", type=int, default=None, help="Override bootstrap.n_resamples")

    v = sub.add_parser("validate-template", help="Load and validate an annotation template")
    v.add_argument("template", nargs="?", default=None, help=TEMPLATE_ARG_HELP)

    e = sub.add_parser("export-template", help="Export an annotation template for the annotation tool")
    e.add_argument("template", nargs="?", default=None, help=TEMPLATE_ARG_HELP)
    e.add_argument("--format", dest="fmt", choices=["js", "json"], default="js")
    e.add_argument("--out", type=str, required=True, help="Output file path")

    r = sub.add_parser("render-prompt", help="Render the span-annotation prompt")
    r.add_argument("--source", type=str, required=True, help="File with the source document")
    r.add_argument("--summary", type=str, required=True, help="File with the summary")
    r.add_argument("--score", type=float, required=True, help="Numeric score shown to the model")
    r.add_argument("--prompt", type=str, default=None, help="Override prompt template path")

    s = sub.add_parser("parse-spans", help="Parse a model answer into span annotations")
    s.add_argument("answer", type=str, help="File with the model answer")

    return p.parse_args(argv)


def _load_config(path: Path) -> AnalysisConfig:
    if path.exists():
        return load_analysis_config(path)
    logger.info("No analysis config at %s; using defaults", path)
    return AnalysisConfig()


def cmd_analyze(args: argparse.Namespace, cfg: AnalysisConfig) -> int:
    updates: dict[str, object] = {}
    if args.input_dir is not None:
        updates["input"] = cfg.input.model_copy(update={"input_dir": Path(args.input_dir)})
    if args.n_resamples is not None:
        updates["bootstrap"] = cfg.bootstrap.model_copy(update={"n_resamples": args.n_resamples})
    if updates:
        cfg = AnalysisConfig.model_validate({**cfg.model_dump(), **{k: v.model_dump() for k, v in updates.items()}})

    # ---- Per-run output folder ----
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    rubrics = "-".join(r.value for r in cfg.rubrics)
    run_id = f"{ts}_{cfg.input.mode.value}_{rubrics}_nres{cfg.bootstrap.n_resamples}_{cfg.bootstrap.method}"
    run_dir = cfg.output_root / run_id
    run_dir.mkdir(parents=True, exist_ok=True)

    log_path = run_dir / LOG_FILENAME
    configure_logging(
        log_file=log_path,
        console_level=getattr(logging, args.console_level),
        file_level=getattr(logging, args.file_level),
    )
    set_log_context(run_id_full=run_id)

    logger.info("Starting run: run_id=%s (run_tag=%s)", run_id, make_run_tag(run_id))
    logger.info("Run output directory: %s", run_dir)

    write_text(
        run_dir / CONFIG_SNAPSHOT_FILENAME,
        json.dumps(cfg.model_dump(mode="json"), ensure_ascii=False, indent=2, default=str),
    )

    tables = load_rating_tables(cfg.input, cfg.tables_needed)
    results = run_all(tables, cfg)

    output_paths, summary_path = write_rubric_outputs(cfg, results, run_dir)
    log_analysis_summary(results, output_paths, summary_path)
    logger.info("Detailed log: %s", log_path)
    return 0


def resolve_template_path(template_arg: str | None, cfg: AnalysisConfig) -> Path:
    """Explicit path wins; otherwise the default template inside cfg.templates_dir."""
    if template_arg:
        return Path(template_arg)
    return cfg.templates_dir / DEFAULT_TEMPLATE_FILE.name


def cmd_validate_template(args: argparse.Namespace, cfg: AnalysisConfig) -> int:
    template = load_template_config(resolve_template_path(args.template, cfg))
    log_template_summary(template)
    return 0


def cmd_export_template(args: argparse.Namespace, cfg: AnalysisConfig) -> int:
    template = load_template_config(resolve_template_path(args.template, cfg))
    write_template_export(template, Path(args.out), fmt=args.fmt)
    return 0


def cmd_render_prompt(args: argparse.Namespace, cfg: AnalysisConfig) -> int:
    source_path, summary_path = Path(args.source), Path(args.summary)
    ensure_exists(source_path, "source document")
    ensure_exists(summary_path, "summary")

    pm = PromptManager(prompts_root=cfg.prompts_root, register_in_opik=cfg.prompts_register_in_opik)
    prompt = pm.get_prompt(
        SPAN_ANNOTATION_PROMPT,
        override_path=Path(args.prompt) if args.prompt else None,
        required_placeholders=SPAN_PROMPT_PLACEHOLDERS,
    )
    score = int(args.score) if float(args.score).is_integer() else args.score
    sys.stdout.write(build_span_annotation_prompt(prompt, read_text(source_path), read_text(summary_path), score))
    sys.stdout.write("\n")
    return 0


def cmd_parse_spans(args: argparse.Namespace, cfg: AnalysisConfig) -> int:
    answer_path = Path(args.answer)
    ensure_exists(answer_path, "model answer")
    result = parse_span_annotations(read_text(answer_path), allowed_labels=cfg.span_labels or None)
    sys.stdout.write(result.model_dump_json(indent=2))
    sys.stdout.write("\n")
    return 0


@track(
    name="Annotation.tools",
    type="general",
    metadata={"task": "annotation_tools"},
    capture_input=False,
    capture_output=False,
    flush=True,
)
def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    env_file = Path(args.env)
    if env_file.exists():
        load_dotenv(env_file, override=True)

    # console logging until `analyze` adds its per-run log file
    configure_logging(console_level=getattr(logging, args.console_level))

    cfg = _load_config(Path(args.config))

    if args.command == "analyze":
        return cmd_analyze(args, cfg)
    if args.command == "validate-template":
        return cmd_validate_template(args, cfg)
    if args.command == "export-template":
        return cmd_export_template(args, cfg)
    if args.command == "render-prompt":
        return cmd_render_prompt(args, cfg)
    if args.command == "parse-spans":
        return cmd_parse_spans(args, cfg)
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
