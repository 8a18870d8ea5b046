"""Find the prefix of a streamed Markdown string that is safe to finalize."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .math_segments import FENCE, MATH_DELIMITER, is_escaped, is_fence_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StableSplit:
    stable: str
    buffer: str


def find_stable_boundary(content: str) -> StableSplit:
    """Split *content* into ``stable`` and ``buffer`` parts.

    Stability points are the end of a closed ``$$`` block, the end of a closed
    fence line, and any blank line outside an open construct. If a fence or
    math block is still open at the end, the boundary rolls back to where that
    construct began. ``stable + buffer == content`` always holds, and a longer
    input never yields a shorter or different ``stable`` prefix.
    """
    in_code_fence = False
    in_math_block = False
    code_fence_start: int | None = None
    math_block_start: int | None = None
    last_stable = 0

    i = 0
    length = len(content)
    while i < length:
        ch = content[i]

        if ch == "$" and not in_code_fence and content.startswith(MATH_DELIMITER, i):
            if in_math_block:
                in_math_block = False
                math_block_start = None
                i += len(MATH_DELIMITER)
                last_stable = i
                continue
            if not is_escaped(content, i):
                in_math_block = True
                math_block_start = i
                i += len(MATH_DELIMITER)
                continue

        if ch == "`" and not in_math_block and is_fence_at(content, i):
            if in_code_fence:
                line_end = content.find("\n", i + len(FENCE))
                i = length if line_end == -1 else line_end + 1
                in_code_fence = False
                code_fence_start = None
                last_stable = i
                continue
            in_code_fence = True
            code_fence_start = i
            i += len(FENCE)
            continue

        if (
            ch == "\n"
            and not in_code_fence
            and not in_math_block
            and i + 1 < length
            and content[i + 1] == "\n"
        ):
            last_stable = i + 2

        i += 1

    if in_code_fence and code_fence_start is not None:
        logger.debug("Unterminated fence at offset %d held in buffer", code_fence_start)
        last_stable = code_fence_start
    if in_math_block and math_block_start is not None:
        logger.debug("Unterminated $$ at offset %d held in buffer", math_block_start)
        last_stable = min(last_stable, math_block_start)

    return StableSplit(stable=content[:last_stable], buffer=content[last_stable:])
