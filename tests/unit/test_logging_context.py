import logging

from infrastructure.observability import get_log_context, make_run_tag, rubric_log_context, set_log_context
from infrastructure.observability.logging import ContextInjectFilter


def test_run_tag_is_short_and_stable() -> None:
    tag = make_run_tag("20250101_120000_csv_independent")

    assert len(tag) == 8
    assert tag == make_run_tag("20250101_120000_csv_independent")


def test_rubric_context_is_restored() -> None:
    set_log_context(run_id_full="run-1")

    with rubric_log_context("pairwise"):
        assert get_log_context()["rubric"] == "pairwise"
    ctx = get_log_context()

    assert ctx["rubric"] == "-"
    assert ctx["run_id_full"] == "run-1"
    assert ctx["run_tag"] == make_run_tag("run-1")


def test_filter_injects_context_fields() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    with rubric_log_context("counterfactual"):
        assert ContextInjectFilter().filter(record)

    assert record.rubric == "counterfactual"
