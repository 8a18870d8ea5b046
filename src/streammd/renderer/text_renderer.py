"""Render parsed blocks as selectable plain text."""

from __future__ import annotations

from collections.abc import Sequence

from streammd.parser.base import (
    BlockQuote,
    BlockType,
    CheckboxState,
    CodeBlock,
    Emphasis,
    FootnoteDefinition,
    FootnoteRef,
    FootnoteReference,
    Heading,
    HtmlBlock,
    ImageBlock,
    InlineContent,
    InlineImage,
    InlineMath,
    Link,
    ListBlock,
    ListItem,
    MarkdownBlock,
    MathBlock,
    MermaidDiagram,
    Paragraph,
    Strikethrough,
    Strong,
    Table,
    ThematicBreak,
)
from streammd.parser.grouping import ImageRow, SpecialBlock, TextGroup, group_blocks

HORIZONTAL_RULE = "─" * 31
_BULLETS = ("•", "◦", "▪")


def render_inline_text(content: InlineContent) -> str:
    parts: list[str] = []
    for element in content.elements:
        if isinstance(element, (Emphasis, Strong, Strikethrough, Link)):
            parts.append(render_inline_text(element.content))
        elif isinstance(element, InlineImage):
            parts.append(element.alt or "[image]")
        elif isinstance(element, InlineMath):
            parts.append(f"${element.latex}$")
        elif isinstance(element, FootnoteRef):
            parts.append(f"[{element.id}]")
        else:
            parts.append(element.plain_text)
    return "".join(parts)


def spacing_between(prev: BlockType, current: BlockType) -> str:
    if isinstance(prev, Heading):
        return "\n"
    if isinstance(current, Heading):
        return "\n\n"
    if isinstance(prev, Paragraph) and isinstance(current, Paragraph):
        return "\n\n"
    return "\n"


def render_list_items(items: Sequence[ListItem]) -> str:
    lines: list[str] = []
    for item in items:
        indent = "    " * item.depth
        if item.checkbox is not None:
            bullet = "☑ " if item.checkbox is CheckboxState.CHECKED else "☐ "
        elif item.list_ordered:
            bullet = f"{item.list_start_index + item.item_index}. "
        else:
            bullet = _BULLETS[min(item.depth, len(_BULLETS) - 1)] + " "
        lines.append(indent + bullet + render_inline_text(item.content))
        if item.children:
            lines.append(render_list_items(item.children))
    return "\n".join(lines)


def _render_quote(blocks: Sequence[MarkdownBlock]) -> str:
    paragraphs = [
        render_inline_text(block.type.content)
        for block in blocks
        if isinstance(block.type, Paragraph)
    ]
    return "│ " + "".join(paragraphs)


def _render_block(block_type: BlockType) -> str:
    if isinstance(block_type, (Paragraph, Heading)):
        return render_inline_text(block_type.content)
    if isinstance(block_type, BlockQuote):
        return _render_quote(block_type.blocks)
    if isinstance(block_type, ListBlock):
        return render_list_items(block_type.items)
    if isinstance(block_type, ThematicBreak):
        return HORIZONTAL_RULE
    if isinstance(block_type, FootnoteReference):
        return f"[{block_type.id}]"
    if isinstance(block_type, FootnoteDefinition):
        body = "".join(
            render_inline_text(child.type.content)
            for child in block_type.blocks
            if isinstance(child.type, Paragraph)
        )
        return f"[{block_type.id}]: {body}"
    return ""


def render_plain_text(blocks: Sequence[MarkdownBlock]) -> str:
    """Join blocks with the spacing rules used for cross-block text selection."""
    parts: list[str] = []
    for index, block in enumerate(blocks):
        if index > 0:
            parts.append(spacing_between(blocks[index - 1].type, block.type))
        parts.append(_render_block(block.type))
    return "".join(parts)


def render_special_text(block_type: BlockType) -> str:
    """Plain fallback for blocks that are not part of a text run."""
    if isinstance(block_type, (CodeBlock, MermaidDiagram)):
        return block_type.code
    if isinstance(block_type, MathBlock):
        return f"$${block_type.latex}$$"
    if isinstance(block_type, Table):
        return "\n".join(
            "\t".join(render_inline_text(cell) for cell in row.cells) for row in block_type.rows
        )
    if isinstance(block_type, ImageBlock):
        return block_type.alt or block_type.url
    if isinstance(block_type, HtmlBlock):
        return block_type.html.rstrip("\n")
    if isinstance(block_type, Paragraph):
        return render_inline_text(block_type.content)
    return _render_block(block_type)


def render_document_text(blocks: Sequence[MarkdownBlock]) -> str:
    """Render every group: text runs with ``render_plain_text``, others via fallbacks."""
    parts: list[str] = []
    for group in group_blocks(blocks):
        if isinstance(group, TextGroup):
            parts.append(render_plain_text(group.blocks))
        elif isinstance(group, ImageRow):
            parts.append(" ".join(image.alt or image.url for image in group.images))
        elif isinstance(group, SpecialBlock):
            parts.append(render_special_text(group.block.type))
    return "\n\n".join(parts)
