"""Split raw Markdown into display-math (``$$…$$``) and Markdown segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FENCE = "```"
MATH_DELIMITER = "$$"


@dataclass(frozen=True, slots=True)
class Segment:
    content: str
    is_math: bool = False


def is_line_start(text: str, index: int) -> bool:
    """True if only spaces/tabs precede *index* on its line."""
    pos = index - 1
    while pos >= 0:
        ch = text[pos]
        if ch == "\n":
            return True
        if ch not in " \t":
            return False
        pos -= 1
    return True


def is_fence_at(text: str, index: int) -> bool:
    return text.startswith(FENCE, index) and is_line_start(text, index)


def is_escaped(text: str, index: int) -> bool:
    backslashes = 0
    pos = index - 1
    while pos >= 0 and text[pos] == "\\":
        backslashes += 1
        pos -= 1
    return backslashes % 2 == 1


def extract_math_segments(content: str) -> list[Segment]:
    """Return ordered ``Segment``s covering *content*.

    ``$$`` inside a fenced code block is inert. An unclosed ``$$`` is kept as
    literal Markdown together with everything after it. Empty math bodies and
    whitespace-only Markdown runs between segments are not emitted. Without any
    math, the result is a single segment equal to *content*.
    """
    segments: list[Segment] = []
    current: list[str] = []
    in_code_fence = False

    def flush() -> None:
        text = "".join(current)
        if text.strip():
            segments.append(Segment(text))
        current.clear()

    i = 0
    length = len(content)
    while i < length:
        if is_fence_at(content, i):
            in_code_fence = not in_code_fence
            current.append(FENCE)
            i += len(FENCE)
            continue

        if (
            not in_code_fence
            and content.startswith(MATH_DELIMITER, i)
            and not is_escaped(content, i)
        ):
            body_start = i + len(MATH_DELIMITER)
            close = content.find(MATH_DELIMITER, body_start)
            if close == -1:
                logger.debug("Unclosed $$ at offset %d; keeping remainder as text", i)
                current.append(content[i:])
                break

            flush()
            latex = content[body_start:close].strip()
            if latex:
                segments.append(Segment(latex, is_math=True))
            i = close + len(MATH_DELIMITER)
            continue

        current.append(content[i])
        i += 1

    flush()

    if not segments:
        return [Segment(content)]
    return segments
