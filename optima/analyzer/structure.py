"""Structural metrics, recursion detection, and complexity estimation.

The structural pass is a single line scan. Brace depth gives the block
depth for C-family code; colon-terminated lines (Python, `case x:`) open
indentation-scoped blocks that close when a later non-blank line is not
indented past them.

Loop nesting is tracked separately from block depth: each `for|while|do`
token records the depth at which it opened, and a loop only counts as
nested while an enclosing loop's scope is still open. Unrelated braces
(if-blocks, object literals) never inflate the loop nesting depth.
"""

import re
from dataclasses import dataclass

# Minimum `name(` occurrences (definition included) to call a function recursive.
RECURSION_MIN_CALLS = 2

# Minimum occurrences plus a split-point identifier to assume divide-and-conquer.
DIVIDE_AND_CONQUER_MIN_CALLS = 3

_LOOP_TOKEN = re.compile(r"\b(for|while|do)\b")
_FUNCTION_TOKEN = re.compile(r"\b(function|def |fn |=>\s*\{|async\s+\w+\s*\()")

_JS_FUNCTION_NAME = re.compile(r"\bfunction\s+([A-Za-z_][A-Za-z0-9_]*)\s*\(")
_PY_FUNCTION_NAME = re.compile(r"\bdef\s+([A-Za-z_][A-Za-z0-9_]*)\s*\(")
_METHOD_NAME = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*\([^)]*\)\s*\{", re.MULTILINE)

# Control-flow keywords look like `name(...) {` to the method regex.
_NOT_FUNCTION_NAMES = {
    "if", "for", "while", "switch", "catch", "return", "function",
    "elif", "with", "do", "else", "sizeof", "typeof",
}

_SPLIT_POINT = re.compile(r"\b(mid|middle|pivot|left|right|lo|hi)\b", re.IGNORECASE)


@dataclass(frozen=True)
class StructuralMetrics:
    max_depth: int
    loop_count: int
    loop_nesting_depth: int
    function_count: int
    line_count: int


@dataclass(frozen=True)
class RecursionInfo:
    is_recursive: bool = False
    is_divide_and_conquer: bool = False


@dataclass
class _LoopScope:
    depth: int       # brace depth at the loop token
    indent: int      # indentation of the loop line
    indented: bool   # True when the body is delimited by indentation


def measure_structure(code: str) -> StructuralMetrics:
    lines = code.split("\n")
    depth = 0
    max_depth = 0
    loop_count = 0
    function_count = 0
    loop_nesting_depth = 0

    open_loops: list[_LoopScope] = []
    open_blocks: list[int] = []

    for line in lines:
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())

        if stripped:
            open_blocks = [b for b in open_blocks if indent > b]
            open_loops = [s for s in open_loops if not s.indented or indent > s.indent]

        if _FUNCTION_TOKEN.search(stripped):
            function_count += 1

        indented_body = stripped.endswith(":")
        for match in _LOOP_TOKEN.finditer(line):
            prefix = line[:match.start()]
            at_depth = depth + prefix.count("{") - prefix.count("}")
            open_loops.append(_LoopScope(at_depth, indent, indented_body))
            loop_count += 1
            loop_nesting_depth = max(loop_nesting_depth, len(open_loops))

        peak = depth
        for ch in line:
            if ch == "{":
                depth += 1
                peak = max(peak, depth)
            elif ch == "}":
                depth -= 1
        if indented_body:
            open_blocks.append(indent)
        max_depth = max(max_depth, peak + len(open_blocks))

        # Brace-scoped loops whose block has closed (or never opened) end here.
        open_loops = [s for s in open_loops if s.indented or depth > s.depth]

    return StructuralMetrics(
        max_depth=max_depth,
        loop_count=loop_count,
        loop_nesting_depth=loop_nesting_depth,
        function_count=function_count,
        line_count=len(lines),
    )


def _candidate_function_names(code: str) -> list[str]:
    names: dict[str, None] = {}
    for regex in (_JS_FUNCTION_NAME, _PY_FUNCTION_NAME, _METHOD_NAME):
        for match in regex.finditer(code):
            name = match.group(1)
            if name not in _NOT_FUNCTION_NAMES:
                names.setdefault(name)
    return list(names)


def detect_recursion(code: str) -> RecursionInfo:
    """Lightweight self-call heuristic.

    One occurrence of `name(` is the definition itself; a second one is a
    call. Enough calls plus mid/pivot-style identifiers suggest
    divide-and-conquer. This is a heuristic, not a call-graph proof.
    """
    for name in _candidate_function_names(code):
        call_count = len(re.findall(rf"\b{re.escape(name)}\s*\(", code))
        if call_count >= RECURSION_MIN_CALLS:
            divide_and_conquer = (
                call_count >= DIVIDE_AND_CONQUER_MIN_CALLS
                and _SPLIT_POINT.search(code) is not None
            )
            return RecursionInfo(is_recursive=True, is_divide_and_conquer=divide_and_conquer)
    return RecursionInfo()


def estimate_complexity(
    metrics: StructuralMetrics,
    algorithm_complexity: str,
    recursion: RecursionInfo,
) -> str:
    """Named algorithm > divide-and-conquer > recursion > loop nesting."""
    if algorithm_complexity != "Unknown":
        return algorithm_complexity

    if recursion.is_divide_and_conquer:
        return "O(n log n) typical"
    if recursion.is_recursive:
        return "O(n) to O(2ⁿ) (recursive)"

    if metrics.loop_nesting_depth >= 3:
        return "O(n³) or worse"
    if metrics.loop_nesting_depth == 2:
        return "O(n²)"
    if metrics.loop_count >= 1:
        return "O(n)"
    return "O(1)"


_QUADRATIC_OR_WORSE = re.compile(r"O\(n[²³2]\)|O\(n\^[23]\)|worse")
_SUPERLINEAR_OR_EXPONENTIAL = re.compile(r"O\(n[²³]|O\(2")


def is_quadratic_or_worse(complexity: str) -> bool:
    return _QUADRATIC_OR_WORSE.search(complexity) is not None


def is_polynomial_or_exponential(complexity: str) -> bool:
    """True for n², n³ and 2ⁿ complexities (the optimizability gate)."""
    return _SUPERLINEAR_OR_EXPONENTIAL.search(complexity) is not None
