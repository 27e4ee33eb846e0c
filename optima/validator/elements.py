"""Critical-element extraction for the no-loss check.

Identifiers are pulled line by line with per-language heuristic regexes.
The check is structural only: a name that survives in the output may still
be used differently.
"""

import re
from dataclasses import dataclass, field

_VARIABLE = re.compile(r"(?:const|let|var)\s+([a-zA-Z_$][a-zA-Z0-9_$]*)")

# Groups: JS/TS `function foo`, Python `def foo(`, `foo = function` or
# `foo = (...) =>`, and modifier-prefixed Java/C++ method signatures.
_FUNCTION = re.compile(
    r"(?:function\s+([a-zA-Z_$][a-zA-Z0-9_$]*)"
    r"|def\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\("
    r"|([a-zA-Z_$][a-zA-Z0-9_$]*)\s*=\s*(?:function|\([^)]*\)\s*=>)"
    r"|(?:(?:public|private|protected|static|final|synchronized|override|inline|virtual|explicit)\s+)+"
    r"[\w<>\[\]*&:]+\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\()"
)
_CLASS = re.compile(r"class\s+([a-zA-Z_$][a-zA-Z0-9_$]*)")

_ES_IMPORT = re.compile(r"import\s+.*?from\s+['\"]([^'\"]+)['\"]")
_PY_IMPORT = re.compile(r"^(?:from\s+(\S+)\s+)?import\s+(\S+)")
_JAVA_IMPORT = re.compile(r"^import\s+([\w.]+)")
_INCLUDE = re.compile(r"^#include\s*[<\"]([^>\"]+)[>\"]")

# Loop counters and temporaries that models routinely inline.
TRIVIAL_VARIABLES = {
    "i", "j", "k", "n", "m", "x", "y", "z",
    "tmp", "temp", "idx", "len", "val", "res", "ret", "err", "ok", "cb",
}
_SINGLE_LOWERCASE = re.compile(r"^[a-z]$")


def is_trivial_variable(name: str) -> bool:
    return bool(_SINGLE_LOWERCASE.match(name)) or name in TRIVIAL_VARIABLES


@dataclass
class CodeElements:
    variables: dict[str, None] = field(default_factory=dict)
    functions: dict[str, None] = field(default_factory=dict)
    classes: dict[str, None] = field(default_factory=dict)
    imports: dict[str, None] = field(default_factory=dict)


def extract_elements(code: str) -> CodeElements:
    """Collect identifiers in first-seen order (dicts used as ordered sets)."""
    elements = CodeElements()

    for line in code.split("\n"):
        stripped = line.strip()

        match = _VARIABLE.search(stripped)
        if match:
            elements.variables.setdefault(match.group(1))

        match = _FUNCTION.search(stripped)
        if match:
            name = next((g for g in match.groups() if g), None)
            if name:
                elements.functions.setdefault(name)

        match = _CLASS.search(stripped)
        if match:
            elements.classes.setdefault(match.group(1))

        match = _ES_IMPORT.search(stripped)
        if match:
            elements.imports.setdefault(match.group(1))
        else:
            match = _PY_IMPORT.match(stripped)
            if match:
                elements.imports.setdefault(match.group(1) or match.group(2))

        match = _JAVA_IMPORT.match(stripped)
        if match:
            elements.imports.setdefault(match.group(1))

        match = _INCLUDE.match(stripped)
        if match:
            elements.imports.setdefault(match.group(1))

    return elements


@dataclass(frozen=True)
class MissingElements:
    variables: tuple[str, ...] = ()
    functions: tuple[str, ...] = ()
    classes: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.variables or self.functions or self.classes or self.imports)

    def describe(self) -> str:
        """Summarize losses, e.g. "1 function(s): foo; 2 import(s): a, b"."""
        parts = []
        for names, label in (
            (self.variables, "variable(s)"),
            (self.functions, "function(s)"),
            (self.classes, "class(es)"),
            (self.imports, "import(s)"),
        ):
            if names:
                parts.append(f"{len(names)} {label}: {', '.join(names)}")
        return "; ".join(parts)


def find_missing_elements(original: str, optimized: str) -> MissingElements:
    """Names present in `original` but absent from `optimized`.

    Trivial variable names are never reported.
    """
    before = extract_elements(original)
    after = extract_elements(optimized)

    return MissingElements(
        variables=tuple(
            v for v in before.variables
            if v not in after.variables and not is_trivial_variable(v)
        ),
        functions=tuple(f for f in before.functions if f not in after.functions),
        classes=tuple(c for c in before.classes if c not in after.classes),
        imports=tuple(i for i in before.imports if i not in after.imports),
    )
