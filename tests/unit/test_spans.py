import pytest

from domain.schemas import parse_span_annotations

LABELS = ["Contradiction", "Unsupported", "Misattribution", "Other"]


def test_parses_numbered_span_lines() -> None:
    answer = (
        "Span 1: the trial enrolled 400 patients (Label: Contradiction)\n"
        'Span 2: "according to the WHO" (Label: Misattribution)\n'
    )

    result = parse_span_annotations(answer)

    assert not result.none_identified
    assert [(s.index, s.text, s.label) for s in result.spans] == [
        (1, "the trial enrolled 400 patients", "Contradiction"),
        (2, "according to the WHO", "Misattribution"),
    ]


def test_span_text_may_contain_parentheses() -> None:
    result = parse_span_annotations("Span 1: the dose (10 mg) was doubled (Label: Unsupported)")

    assert result.spans[0].text == "the dose (10 mg) was doubled"


@pytest.mark.parametrize("answer", ["None identified", "  none identified.  ", "NONE IDENTIFIED\n"])
def test_none_identified(answer: str) -> None:
    result = parse_span_annotations(answer)

    assert result.none_identified
    assert result.spans == []


def test_preamble_lines_are_ignored() -> None:
    answer = "Here are the issues I found:\n\nSpan 1: five years (Label: Unsupported)\n"

    assert len(parse_span_annotations(answer).spans) == 1


def test_answer_without_spans_is_an_error() -> None:
    with pytest.raises(ValueError, match="no span lines"):
        parse_span_annotations("The summary looks fine to me.")


def test_labels_are_checked_and_canonicalised() -> None:
    result = parse_span_annotations("Span 1: x (Label: unsupported)", allowed_labels=LABELS)
    assert result.spans[0].label == "Unsupported"

    with pytest.raises(ValueError, match="Unknown span label"):
        parse_span_annotations("Span 1: x (Label: Hallucination)", allowed_labels=LABELS)
