"""Truncation detection and bracket repair."""

import re
from typing import NamedTuple

_OPENERS = {"{": "}", "(": ")", "[": "]"}
_CLOSERS = set(_OPENERS.values())
_QUOTES = {'"', "'", "`"}

# Single and double quoted strings cannot span lines; template literals can.
_LINE_BOUND_QUOTES = {'"', "'"}

_DANGLING_SUFFIXES = ("...", "..", "->")
_DANGLING_KEYWORD = re.compile(r"\b(if|for|while|function|class|def|struct)\s*$")
_DANGLING_OPENER = re.compile(r"[{(\[]\s*$")


class RepairResult(NamedTuple):
    code: str
    was_repaired: bool


def unclosed_brackets(code: str) -> list[str]:
    """Return the closers still owed at the end of `code`, innermost last.

    Brackets inside string and template literals are ignored. A closer
    only pops the stack when it matches the innermost open bracket.
    """
    stack: list[str] = []
    quote = ""
    escaped = False

    for ch in code:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
            elif ch == "\n" and quote in _LINE_BOUND_QUOTES:
                quote = ""
            continue

        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS and stack and stack[-1] == ch:
            stack.pop()

    return stack


def repair_truncated_code(code: str) -> RepairResult:
    """Append missing closers in LIFO order, one per line."""
    stack = unclosed_brackets(code)
    if not stack:
        return RepairResult(code, False)
    suffix = "\n".join(reversed(stack))
    return RepairResult(code.rstrip() + "\n" + suffix, True)


def is_code_truncated(code: str) -> bool:
    """Heuristic: does the text stop mid-construct?"""
    tail = code.rstrip()
    return (
        tail.endswith(_DANGLING_SUFFIXES)
        or _DANGLING_KEYWORD.search(tail) is not None
        or _DANGLING_OPENER.search(tail) is not None
    )
