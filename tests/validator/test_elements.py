"""Tests for critical-element extraction and loss detection."""

from optima.validator.elements import (
    MissingElements,
    extract_elements,
    find_missing_elements,
    is_trivial_variable,
)


class TestExtractElements:
    def test_javascript(self):
        code = (
            'import { debounce } from "lodash";\n'
            "class Cache {\n"
            "  constructor() {}\n"
            "}\n"
            "function load(key) {\n"
            "  const value = store[key];\n"
            "  return value;\n"
            "}\n"
            "const save = (key, value) => store.set(key, value);"
        )
        elements = extract_elements(code)
        assert list(elements.imports) == ["lodash"]
        assert list(elements.classes) == ["Cache"]
        assert list(elements.functions) == ["load", "save"]
        assert list(elements.variables) == ["value", "save"]

    def test_python(self):
        code = (
            "from collections import Counter\n"
            "import os\n"
            "def count_words(text):\n"
            "    return Counter(text.split())\n"
        )
        elements = extract_elements(code)
        assert list(elements.imports) == ["collections", "os"]
        assert list(elements.functions) == ["count_words"]

    def test_java_method_and_import(self):
        code = "import java.util.List;\npublic static int sumArray(int[] arr) {"
        elements = extract_elements(code)
        assert "java.util.List" in elements.imports
        assert list(elements.functions) == ["sumArray"]

    def test_c_include(self):
        assert list(extract_elements("#include <stdio.h>").imports) == ["stdio.h"]


class TestTrivialVariables:
    def test_single_letters_and_temporaries(self):
        assert is_trivial_variable("i")
        assert is_trivial_variable("tmp")
        assert not is_trivial_variable("total")
        assert not is_trivial_variable("I")


class TestFindMissingElements:
    def test_nothing_missing(self):
        code = "function f() {\n  const total = 1;\n}"
        assert not find_missing_elements(code, code)

    def test_dropped_function(self):
        original = "function add(a, b) {}\nfunction multiply(a, b) {}"
        missing = find_missing_elements(original, "function add(a, b) {}")
        assert missing.functions == ("multiply",)
        assert missing

    def test_trivial_variables_may_disappear(self):
        original = "let i = 0;\nconst total = 0;"
        assert not find_missing_elements(original, "const total = 0;")

    def test_non_trivial_variable_loss(self):
        missing = find_missing_elements("const cache = {};", "return 1;")
        assert missing.variables == ("cache",)

    def test_describe(self):
        missing = MissingElements(functions=("foo",), imports=("a", "b"))
        assert missing.describe() == "1 function(s): foo; 2 import(s): a, b"
