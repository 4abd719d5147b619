import pytest

from llm_doc_lint.engine.line_locator import find_line, locate_line


SOURCE = "line1\nTARGET\nline3"


def test_quote_on_second_line():
    assert locate_line(SOURCE, [{"quote": "TARGET"}]) == 2


def test_missing_quote_defaults_to_first_line():
    assert locate_line(SOURCE, [{"quote": "AAA"}]) == 1


def test_no_fixes_defaults_to_first_line():
    assert locate_line(SOURCE, []) == 1
    assert locate_line(SOURCE, None) == 1


def test_explicit_line_wins_over_quote():
    assert locate_line(SOURCE, [{"quote": "TARGET", "line": 7}]) == 7


def test_first_explicit_line_in_fix_order():
    fixes = ["plain text fix", {"line": 4}, {"line": 9}]
    assert locate_line(SOURCE, fixes) == 4


def test_explicit_line_from_digit_string():
    assert locate_line(SOURCE, [{"line": "3"}]) == 3


@pytest.mark.parametrize("bad", [True, 0, -2, "abc", None, 1.5])
def test_unusable_explicit_line_falls_through_to_quote(bad):
    assert locate_line(SOURCE, [{"line": bad, "quote": "line3"}]) == 3


def test_no_source_text_ignores_quotes():
    assert locate_line(None, [{"quote": "TARGET"}]) == 1
    assert locate_line("", [{"quote": "TARGET"}]) == 1


def test_no_source_text_still_honours_explicit_line():
    assert locate_line(None, [{"line": 5}]) == 5


def test_case_insensitive_match():
    text = "Alpha\nThe Hook Sentence\nOmega"
    assert locate_line(text, [{"quote": "the hook sentence"}]) == 2


def test_whitespace_collapsed_match_across_wrapped_lines():
    text = "intro\nThis is a long\n   sentence that wraps\nend"
    assert locate_line(text, [{"quote": "is a long   sentence that"}]) == 2


def test_collapsed_match_skips_blank_lines():
    text = "first\n\n\nsecond   part\ncontinues here"
    assert find_line(text, "part continues") == 4


def test_quote_fields_searched_before_original():
    text = "x\nfoo\nbar"
    fixes = [{"original": "foo"}, {"quote": "bar"}]
    assert locate_line(text, fixes) == 3


def test_before_field_takes_precedence():
    text = "one\ntwo\nthree"
    assert locate_line(text, [{"quote": "three", "before": "two"}]) == 2


def test_match_and_current_text_fields_are_used():
    text = "one\ntwo\nthree"
    assert locate_line(text, [{"current_text": "three"}]) == 3
    assert locate_line(text, [{"match": "two"}]) == 2


def test_non_mapping_fixes_are_ignored():
    assert locate_line(SOURCE, ["TARGET", 42, None]) == 1


def test_find_line_returns_none_when_absent():
    assert find_line(SOURCE, "nowhere") is None
    assert find_line(SOURCE, "   ") is None


def test_locate_line_is_stable_across_calls():
    fixes = [{"quote": "TARGET"}]
    assert locate_line(SOURCE, fixes) == locate_line(SOURCE, fixes)


@pytest.mark.parametrize("fixes", [
    [],
    [{"quote": "line1"}],
    [{"quote": "zzz"}],
    [{"line": "12"}],
    [{"before": "\n"}],
])
def test_result_is_always_positive(fixes):
    assert locate_line(SOURCE, fixes) >= 1


def test_quote_absent_from_single_line_source():
    assert locate_line("AAA", [{"quote": "not present"}]) == 1


def test_explicit_line_used_when_quote_is_absent():
    assert locate_line(SOURCE, [{"quote": "not in the document", "line": 7}]) == 7
