"""Inline content parsing: AST inline nodes to ``InlineContent``.

Text leaves are rescanned for two constructs CommonMark does not know about:
footnote references (``[^id]``) and inline math (``$…$``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .ast import MarkdownNode, NodeKind
from .base import (
    Emphasis,
    FootnoteRef,
    HardBreak,
    InlineCode,
    InlineContent,
    InlineElement,
    InlineHtml,
    InlineImage,
    InlineMath,
    Link,
    SoftBreak,
    Strikethrough,
    Strong,
    Text,
)

logger = logging.getLogger(__name__)


def parse_inline(nodes: Iterable[MarkdownNode]) -> InlineContent:
    elements: list[InlineElement] = []
    for node in _join_text_runs(nodes):
        elements.extend(parse_inline_node(node))
    return InlineContent(tuple(elements))


def _join_text_runs(nodes: Iterable[MarkdownNode]) -> list[MarkdownNode]:
    """Merge adjacent text leaves so rescans see ``[^id]`` and ``$…$`` whole."""
    joined: list[MarkdownNode] = []
    for node in nodes:
        if node.kind is NodeKind.TEXT and joined and joined[-1].kind is NodeKind.TEXT:
            joined[-1] = MarkdownNode(NodeKind.TEXT, literal=joined[-1].literal + node.literal)
        else:
            joined.append(node)
    return joined


def parse_inline_node(node: MarkdownNode) -> list[InlineElement]:
    kind = node.kind

    if kind is NodeKind.TEXT:
        return split_text(node.literal)
    if kind is NodeKind.EMPHASIS:
        return [Emphasis(parse_inline(node.children))]
    if kind is NodeKind.STRONG:
        return [Strong(parse_inline(node.children))]
    if kind is NodeKind.STRIKETHROUGH:
        return [Strikethrough(parse_inline(node.children))]
    if kind is NodeKind.CODE_SPAN:
        return [InlineCode(node.literal)]
    if kind is NodeKind.LINK:
        return [Link(parse_inline(node.children), url=node.url or "", title=node.title)]
    if kind is NodeKind.IMAGE:
        return [InlineImage(url=node.url or "", alt=image_alt(node), title=node.title)]
    if kind is NodeKind.SOFT_BREAK:
        return [SoftBreak()]
    if kind is NodeKind.HARD_BREAK:
        return [HardBreak()]
    if kind is NodeKind.HTML_INLINE:
        return [InlineHtml(node.literal)]

    logger.debug("Dropping inline node of kind %s", kind.value)
    return []


def image_alt(node: MarkdownNode) -> str | None:
    """Alt text of an image node, or ``None`` when it has none."""
    alt = "".join(_collect_text(node.children)) or node.literal
    return alt or None


def _collect_text(nodes: Iterable[MarkdownNode]) -> list[str]:
    parts: list[str] = []
    for node in nodes:
        if node.kind in (NodeKind.TEXT, NodeKind.CODE_SPAN):
            parts.append(node.literal)
        elif node.kind in (NodeKind.SOFT_BREAK, NodeKind.HARD_BREAK):
            parts.append(" ")
        else:
            parts.extend(_collect_text(node.children))
    return parts


def split_text(text: str) -> list[InlineElement]:
    """Split a text leaf into text, footnote reference and inline math elements."""
    result: list[InlineElement] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            result.append(Text("".join(current)))
            current.clear()

    i = 0
    length = len(text)
    while i < length:
        ch = text[i]

        if ch == "[":
            footnote = match_footnote_reference(text, i)
            if footnote is not None:
                flush()
                footnote_id, i = footnote
                result.append(FootnoteRef(footnote_id))
                continue

        if ch == "$":
            # "$$" belongs to block math; keep it literal here.
            if i + 1 < length and text[i + 1] == "$":
                current.append("$$")
                i += 2
                continue

            math = match_inline_math(text, i)
            if math is not None:
                flush()
                latex, i = math
                result.append(InlineMath(latex))
                continue

        current.append(ch)
        i += 1

    flush()
    return result


def is_footnote_id_char(ch: str) -> bool:
    return ch.isalnum() or ch in "-_"


def match_footnote_reference(text: str, start: int) -> tuple[str, int] | None:
    """Match ``[^id]`` at *start*; return ``(id, end)`` or ``None``."""
    if not text.startswith("[^", start):
        return None

    i = start + 2
    while i < len(text):
        ch = text[i]
        if ch == "]":
            if i == start + 2:
                return None
            return text[start + 2:i], i + 1
        if not is_footnote_id_char(ch):
            return None
        i += 1
    return None


def match_inline_math(text: str, start: int) -> tuple[str, int] | None:
    """Match ``$…$`` at *start* on a single line; return ``(latex, end)`` or ``None``."""
    body_start = start + 1
    if body_start >= len(text) or text[body_start] == " ":
        return None

    i = body_start
    while i < len(text):
        ch = text[i]
        if ch == "$":
            if text[i - 1] == " ":
                return None
            if i == body_start:
                return None
            return text[body_start:i], i + 1
        if ch == "\n":
            return None
        i += 1
    return None
