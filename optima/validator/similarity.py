"""Line-based similarity and size heuristics."""

import math

# Lines longer than this may match on a shared prefix instead of exactly.
PREFIX_MATCH_CHARS = 10


def round_half_up(value: float) -> int:
    """Round halves upward: 12.5 becomes 13, unlike the builtin round()."""
    return int(math.floor(value + 0.5))


def _lines_match(original: str, optimized: str) -> bool:
    if original == optimized:
        return True
    if len(original) > PREFIX_MATCH_CHARS and len(optimized) > PREFIX_MATCH_CHARS:
        return (
            optimized[:PREFIX_MATCH_CHARS] in original
            or original[:PREFIX_MATCH_CHARS] in optimized
        )
    return False


def code_similarity(original: str, optimized: str) -> int:
    """Position-aligned similarity score, 0..100.

    The fraction of aligned non-blank lines that match, weighted by the
    ratio of the shorter line count to the longer.
    """
    before = [line.strip() for line in original.strip().split("\n") if line.strip()]
    after = [line.strip() for line in optimized.strip().split("\n") if line.strip()]
    if not before or not after:
        return 0

    shorter = min(len(before), len(after))
    longer = max(len(before), len(after))
    matching = sum(1 for a, b in zip(before, after) if _lines_match(a, b))

    return round_half_up(matching / longer * (shorter / longer) * 100)


def count_meaningful_lines(code: str) -> int:
    """Non-blank lines that are neither a comment nor a bare brace."""
    count = 0
    for line in code.split("\n"):
        stripped = line.strip()
        if not stripped or stripped in ("{", "}"):
            continue
        if stripped.startswith(("//", "#", "*")):
            continue
        count += 1
    return count


def normalize_code(code: str) -> str:
    """Trailing whitespace on each line and around the whole text is ignored."""
    return "\n".join(line.rstrip() for line in code.split("\n")).strip()


def is_unchanged(original: str, optimized: str) -> bool:
    return normalize_code(original) == normalize_code(optimized)
