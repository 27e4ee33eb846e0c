"""Tests for bracket repair and truncation detection."""

import pytest

from optima.validator.repair import is_code_truncated, repair_truncated_code, unclosed_brackets


class TestUnclosedBrackets:
    def test_balanced(self):
        assert unclosed_brackets("function f() { return [1, 2]; }") == []

    def test_innermost_last(self):
        assert unclosed_brackets("call(arr[0") == [")", "]"]

    def test_brackets_in_strings_are_ignored(self):
        assert unclosed_brackets('const s = "{[(";') == []
        assert unclosed_brackets("const t = `${a} {`;") == []

    def test_escaped_quote(self):
        assert unclosed_brackets('const s = "a\\"{";') == []

    def test_newline_ends_single_quoted_string(self):
        assert unclosed_brackets("const s = 'abc\nfoo({") == [")", "}"]


class TestRepairTruncatedCode:
    def test_balanced_code_is_unchanged(self):
        code = "function f() {\n  return 1;\n}"
        assert repair_truncated_code(code) == (code, False)

    def test_appends_closers_in_lifo_order(self):
        result = repair_truncated_code("function f() {\n  if (x) {\n    y();")
        assert result.was_repaired
        assert result.code == "function f() {\n  if (x) {\n    y();\n}\n}"

    def test_mixed_brackets(self):
        assert repair_truncated_code("call(arr[0").code == "call(arr[0\n]\n)"


class TestIsCodeTruncated:
    @pytest.mark.parametrize("code", [
        "const x = 1...",
        "return a ->",
        "if",
        "foo(",
    ])
    def test_truncated(self, code):
        assert is_code_truncated(code)

    @pytest.mark.parametrize("code", [
        "const x = 1;",
        "x = y;  // done",
        "while x",
        "def f():\n    return 1\n",
    ])
    def test_complete(self, code):
        assert not is_code_truncated(code)
