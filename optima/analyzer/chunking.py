"""Boundary-aware splitting of long inputs.

Chunks are exact line-aligned substrings: ``"\\n".join(chunks)`` always
reconstructs the input, and no chunk is empty. Short inputs come back as
a single chunk unchanged.
"""

from optima.analyzer.tables import CHUNK_BOUNDARY

# Characters per model call.
CHUNK_SIZE = 3_200


def chunk_code(code: str, chunk_size: int = CHUNK_SIZE) -> list[str]:
    if len(code) <= chunk_size:
        return [code]

    chunks: list[str] = []
    current: list[str] = []
    size = 0

    for line in code.split("\n"):
        at_boundary = CHUNK_BOUNDARY.match(line.strip()) is not None

        if at_boundary and current and size > chunk_size / 2:
            chunks.append("\n".join(current))
            current = [line]
            size = len(line) + 1
            continue

        current.append(line)
        size += len(line) + 1
        if size >= chunk_size:
            chunks.append("\n".join(current))
            current = []
            size = 0

    if current:
        leftover = "\n".join(current)
        if leftover.strip() or not chunks:
            chunks.append(leftover)
        else:
            # Trailing blank lines stay with the last chunk.
            chunks[-1] = chunks[-1] + "\n" + leftover

    return chunks


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _min_indent(lines: list[str]) -> int:
    return min(len(_indent_of(line)) for line in lines)


def restore_chunk_layout(original: str, optimized: str) -> str:
    """Seat a chunk's rewritten code back where `original` sat.

    Extracted model output is stripped, so the first line loses its
    indentation and the chunk loses its surrounding blank lines. Both come
    back from `original`. If the model also dedented the rest of the block,
    every line is shifted by the original first-line indent.
    """
    lines = original.split("\n")
    filled = [i for i, line in enumerate(lines) if line.strip()]
    if not filled:
        return original

    head = lines[: filled[0]]
    tail = lines[filled[-1] + 1 :]
    indent = _indent_of(lines[filled[0]])

    body = optimized.strip("\n").split("\n")
    first, rest = body[0].lstrip(), body[1:]
    if indent:
        filled_rest = [line for line in rest if line.strip()]
        original_rest = [lines[i] for i in filled[1:]]
        if filled_rest and original_rest and _min_indent(filled_rest) < _min_indent(original_rest):
            rest = [indent + line if line.strip() else line for line in rest]

    return "\n".join(head + [indent + first] + rest + tail)
