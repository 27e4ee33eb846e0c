"""Code extraction from raw model output.

Strategies, first hit wins:

  1. complete fenced block
  2. unterminated fenced block (the model stopped before the closing fence)
  3. a single inline-backtick span
  4. raw text with prose-shaped lines dropped

Comment lines are code and are always kept.
"""

import re
from typing import Optional

_PREAMBLE = re.compile(
    r"^(?:here\s+is|below\s+is|the\s+optimized|optimized\s+(?:code|version)"
    r"|output|result|answer|fixed|improved)[^\n]*:\s*\n",
    re.IGNORECASE,
)
_FENCED_COMPLETE = re.compile(r"```[\w+#-]*[^\S\n]*\n([\s\S]*?)```")
_FENCED_OPEN = re.compile(r"```[\w+#-]*[^\S\n]*\n([\s\S]+)$")
_INLINE = re.compile(r"^`([^`]+)`\s*$")

# Capitalized word, at least two more lowercase words, sentence punctuation.
_PROSE_SHAPE = re.compile(r"^[A-Z][a-z]+(?:\s+[a-z]+){2,}[.!?]\s*$")
_CODE_PUNCTUATION = re.compile(r"[{}()\[\];=<>/*]")


def strip_preamble(text: str) -> str:
    return _PREAMBLE.sub("", text, count=1).strip()


def looks_like_prose(line: str) -> bool:
    stripped = line.strip()
    return bool(_PROSE_SHAPE.match(stripped)) and not _CODE_PUNCTUATION.search(stripped)


def extract_code(raw_text: str) -> Optional[str]:
    """Return the code carried by `raw_text`, or None if there is none."""
    text = (raw_text or "").strip()
    if not text:
        return None

    text = strip_preamble(text)

    match = _FENCED_COMPLETE.search(text)
    if match:
        return match.group(1).strip() or None

    match = _FENCED_OPEN.search(text)
    if match:
        candidate = match.group(1).strip()
        if candidate:
            return candidate

    match = _INLINE.match(text)
    if match:
        return match.group(1).strip() or None

    kept = [
        line for line in text.split("\n")
        if line.strip() and not looks_like_prose(line)
    ]
    candidate = "\n".join(kept).strip()
    return candidate or None
