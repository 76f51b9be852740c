import argparse
import json
from pathlib import Path

from infrastructure.config.models import AnalysisConfig
from main import cmd_export_template, resolve_template_path

TINY_TEMPLATE = """\
name: tiny
severities:
  major: {display: Major, shortcut: M, color: pink, description: Big.}
errors:
  other: {display: Other, description: Anything.}
"""


def test_default_template_comes_from_templates_dir(tmp_path: Path) -> None:
    cfg = AnalysisConfig(templates_dir=tmp_path)

    assert resolve_template_path(None, cfg) == tmp_path / "mqm-quality-score.yaml"
    assert resolve_template_path("other.yaml", cfg) == Path("other.yaml")


def test_export_reads_configured_templates_dir(tmp_path: Path) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "mqm-quality-score.yaml").write_text(TINY_TEMPLATE, encoding="utf-8")
    out = tmp_path / "out" / "tiny.json"

    args = argparse.Namespace(template=None, out=str(out), fmt="json")
    assert cmd_export_template(args, AnalysisConfig(templates_dir=templates)) == 0

    body = json.loads(out.read_text(encoding="utf-8"))
    assert list(body["errors"]) == ["other"]
    assert list(body["severities"]) == ["major"]
