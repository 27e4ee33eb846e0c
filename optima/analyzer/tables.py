"""Strategy tables for the regex-driven analyzer heuristics.

Each table is an ordered list of (compiled pattern, label[, extra]) rows.
Detection walks the table and the first match wins, so rows must be
ordered from most to least specific. New algorithms or languages are added
here without touching control flow in analyzer.py.
"""

import re
from typing import NamedTuple


class AlgorithmRow(NamedTuple):
    pattern: re.Pattern
    label: str
    complexity: str


def _row(pattern: str, label: str, complexity: str) -> AlgorithmRow:
    return AlgorithmRow(re.compile(pattern, re.IGNORECASE), label, complexity)


# Specific sorts precede the generic `.sort(` row.
ALGORITHM_TABLE: list[AlgorithmRow] = [
    _row(r"quicksort|partition|pivot", "Quick Sort", "O(n log n) avg"),
    _row(r"mergesort|merge_sort|merge\s*\(", "Merge Sort", "O(n log n)"),
    _row(r"heapsort|heap_sort|heapify", "Heap Sort", "O(n log n)"),
    _row(r"bubblesort|bubble_sort", "Bubble Sort", "O(n²)"),
    _row(r"insertionsort|insertion_sort", "Insertion Sort", "O(n²)"),
    _row(r"selectionsort|selection_sort", "Selection Sort", "O(n²)"),
    _row(r"binarysearch|binary_search", "Binary Search", "O(log n)"),
    _row(r"\bbfs\b|breadth.first", "BFS", "O(V+E)"),
    _row(r"\bdfs\b|depth.first", "DFS", "O(V+E)"),
    _row(r"dijkstra", "Dijkstra's", "O((V+E) log V)"),
    _row(r"dynamic.program|dp\[|memo\[|memoiz", "Dynamic Programming", "O(n²) typical"),
    _row(r"fibonacci|fib\(", "Fibonacci", "O(2ⁿ) naive"),
    _row(r"factorial", "Factorial", "O(n)"),
    _row(r"hash.*map|hashmap|new Map\(", "Hash Map Lookup", "O(1) avg"),
    _row(r"\.sort\s*\(", "Array Sort", "O(n log n)"),
    _row(r"\.filter\s*\(|\.map\s*\(|\.reduce", "Functional Pipeline", "O(n)"),
    _row(r"fetch\s*\(|axios\.|http\.", "HTTP/API Call", "O(1) network"),
    _row(r"regex|RegExp|\.match\(", "Regex Processing", "O(n·m) worst"),
    _row(r"class\s+\w+|interface\s+\w+", "OOP / Class Design", "N/A"),
]

DEFAULT_ALGORITHM = "Custom Logic"
UNKNOWN_COMPLEXITY = "Unknown"


# Used only when the caller asks for detection ("" or "auto").
LANGUAGE_SIGNATURES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"def\s+\w+\s*\(|import\s+\w+\s*$|:\s*$"), "Python"),
    (re.compile(r"fn\s+\w+\s*\(|let\s+mut\s+|println!"), "Rust"),
    (re.compile(r"package\s+main|func\s+\w+\s*\(|fmt\."), "Go"),
    (re.compile(r"::\w+|std::|->"), "C++"),
    (re.compile(r"#include\s*<"), "C"),
    (re.compile(r"public\s+class|System\.out\.println"), "Java"),
    (re.compile(r":\s*(string|number|boolean|any|void)\b"), "TypeScript"),
]

DEFAULT_LANGUAGE = "JavaScript"

AUTO_LANGUAGE_VALUES = {"", "auto"}


# Lines starting with one of these keywords open a new chunk once the
# current chunk is past half the size limit.
CHUNK_BOUNDARY = re.compile(
    r"^(function |class |def |fn |public |private |protected |export |async function )"
)


def detect_algorithm(code: str) -> tuple[str, str]:
    """Return (label, complexity) of the first matching algorithm row."""
    for row in ALGORITHM_TABLE:
        if row.pattern.search(code):
            return row.label, row.complexity
    return DEFAULT_ALGORITHM, UNKNOWN_COMPLEXITY


def detect_language(code: str) -> str:
    for pattern, language in LANGUAGE_SIGNATURES:
        if pattern.search(code):
            return language
    return DEFAULT_LANGUAGE
