"""Tests for code extraction from raw model output."""

from optima.validator.extraction import extract_code, looks_like_prose, strip_preamble


class TestExtractCode:
    def test_complete_fence_with_surrounding_prose(self):
        raw = "Here is the optimized code:\n```python\nx = 1\n```\nThis is faster."
        assert extract_code(raw) == "x = 1"

    def test_unterminated_fence(self):
        assert extract_code("```js\nconst x=1;\n") == "const x=1;"

    def test_fence_without_language(self):
        assert extract_code("```\nint x = 0;\n```") == "int x = 0;"

    def test_fence_with_symbolic_language_tag(self):
        assert extract_code("```c++\nint x;\n```") == "int x;"

    def test_first_fence_wins(self):
        raw = "```js\nconst a = 1;\n```\n\n```js\nconst b = 2;\n```"
        assert extract_code(raw) == "const a = 1;"

    def test_inline_span(self):
        assert extract_code("`return a + b;`") == "return a + b;"

    def test_raw_text_drops_prose_lines(self):
        raw = "This is the result.\nconst y = 2;\n// keep comment"
        assert extract_code(raw) == "const y = 2;\n// keep comment"

    def test_prose_only_is_none(self):
        assert extract_code("Sorry this cannot help.") is None

    def test_empty_output(self):
        assert extract_code("") is None
        assert extract_code("   \n\t") is None
        assert extract_code(None) is None

    def test_empty_fence(self):
        assert extract_code("```python\n```") is None


class TestHelpers:
    def test_strip_preamble(self):
        assert strip_preamble("Optimized code:\nx = 1") == "x = 1"
        assert strip_preamble("x = 1") == "x = 1"

    def test_looks_like_prose(self):
        assert looks_like_prose("This makes the loop faster.")
        assert not looks_like_prose("total = a + b;")
        assert not looks_like_prose("# This is a comment.")
