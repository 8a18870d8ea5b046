"""Provider-neutral Markdown syntax tree and the markdown-it-py adapter.

The block and inline parsers only ever see ``MarkdownNode`` values, so any
CommonMark-family library can be plugged in by implementing ``AstProvider``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from markdown_it import MarkdownIt
from markdown_it.rules_block.reference import reference as reference_rule
from markdown_it.rules_block.state_block import StateBlock
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.tasklists import tasklists_plugin

from .base import CheckboxState, ColumnAlignment

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Node discriminants understood by the block and inline parsers."""

    # --- Block nodes ---
    DOCUMENT = "document"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    CODE_BLOCK = "code_block"
    LIST = "list"
    LIST_ITEM = "list_item"
    BLOCK_QUOTE = "block_quote"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"
    THEMATIC_BREAK = "thematic_break"
    HTML_BLOCK = "html_block"

    # --- Inline nodes ---
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    STRIKETHROUGH = "strikethrough"
    CODE_SPAN = "code_span"
    LINK = "link"
    IMAGE = "image"
    SOFT_BREAK = "soft_break"
    HARD_BREAK = "hard_break"
    HTML_INLINE = "html_inline"

    UNKNOWN = "unknown"


@dataclass(slots=True)
class MarkdownNode:
    kind: NodeKind
    children: list[MarkdownNode] = field(default_factory=list)
    literal: str = ""
    level: int = 0
    language: str | None = None
    url: str | None = None
    title: str | None = None
    ordered: bool = False
    start: int = 1
    checkbox: CheckboxState | None = None
    alignments: list[ColumnAlignment] = field(default_factory=list)


class AstProvider(Protocol):
    def parse(self, text: str) -> MarkdownNode:  # pragma: no cover - structural protocol
        """Parse Markdown text into a ``DOCUMENT`` node."""


@dataclass(frozen=True, slots=True)
class ParserOptions:
    tables: bool = True
    strikethrough: bool = True
    task_lists: bool = True
    html: bool = True


# ---------------------------------------------------------------------------
# markdown-it-py provider
# ---------------------------------------------------------------------------

_SIMPLE_KINDS = {
    "root": NodeKind.DOCUMENT,
    "paragraph": NodeKind.PARAGRAPH,
    "list_item": NodeKind.LIST_ITEM,
    "blockquote": NodeKind.BLOCK_QUOTE,
    "tr": NodeKind.TABLE_ROW,
    "th": NodeKind.TABLE_CELL,
    "td": NodeKind.TABLE_CELL,
    "hr": NodeKind.THEMATIC_BREAK,
    "em": NodeKind.EMPHASIS,
    "strong": NodeKind.STRONG,
    "s": NodeKind.STRIKETHROUGH,
    "softbreak": NodeKind.SOFT_BREAK,
    "hardbreak": NodeKind.HARD_BREAK,
}

_LITERAL_KINDS = {
    "text": NodeKind.TEXT,
    "code_inline": NodeKind.CODE_SPAN,
    "html_inline": NodeKind.HTML_INLINE,
    "html_block": NodeKind.HTML_BLOCK,
}

# Wrapper nodes whose children are spliced into the parent.
_TRANSPARENT = {"inline", "thead", "tbody"}

_ALIGN_RE = re.compile(r"text-align\s*:\s*(\w+)")
_CHECKED_RE = re.compile(r"\bchecked\b")


def _reference_without_footnotes(state: StateBlock, start_line: int, end_line: int, silent: bool) -> bool:
    """Link reference definitions, except ``[^id]:`` lines (footnote definitions)."""
    pos = state.bMarks[start_line] + state.tShift[start_line]
    if state.src.startswith("[^", pos):
        return False
    return reference_rule(state, start_line, end_line, silent)


def create_markdown_it(options: ParserOptions | None = None) -> MarkdownIt:
    options = options or ParserOptions()
    md = MarkdownIt("commonmark", {"html": options.html})
    if options.tables:
        md.enable("table")
    if options.strikethrough:
        md.enable("strikethrough")
    if options.task_lists:
        tasklists_plugin(md)
    md.block.ruler.at("reference", _reference_without_footnotes)
    return md


class MarkdownItProvider:
    """``AstProvider`` backed by markdown-it-py."""

    def __init__(self, options: ParserOptions | None = None) -> None:
        self.options = options or ParserOptions()
        self._md = create_markdown_it(self.options)

    def parse(self, text: str) -> MarkdownNode:
        tokens = self._md.parse(text)
        return convert_syntax_tree(SyntaxTreeNode(tokens))


def convert_syntax_tree(node: SyntaxTreeNode) -> MarkdownNode:
    """Convert a markdown-it ``SyntaxTreeNode`` (root or any subtree)."""
    converted = _convert(node)
    if len(converted) == 1:
        return converted[0]
    return MarkdownNode(NodeKind.DOCUMENT, children=converted)


def _convert_children(node: SyntaxTreeNode) -> list[MarkdownNode]:
    result: list[MarkdownNode] = []
    for child in node.children:
        result.extend(_convert(child))
    return result


def _convert(node: SyntaxTreeNode) -> list[MarkdownNode]:
    node_type = node.type

    if node_type in _TRANSPARENT:
        return _convert_children(node)

    if node_type in _LITERAL_KINDS:
        return [MarkdownNode(_LITERAL_KINDS[node_type], literal=node.content or "")]

    if node_type in _SIMPLE_KINDS:
        kind = _SIMPLE_KINDS[node_type]
        converted = MarkdownNode(kind, children=_convert_children(node))
        if kind is NodeKind.LIST_ITEM:
            _take_task_checkbox(converted)
        return [converted]

    if node_type == "heading":
        level = int(node.tag[1:]) if node.tag[1:].isdigit() else 1
        return [MarkdownNode(NodeKind.HEADING, children=_convert_children(node), level=level)]

    if node_type in ("fence", "code_block"):
        info = (node.info or "").strip()
        language = info.split()[0] if info else None
        return [MarkdownNode(NodeKind.CODE_BLOCK, literal=node.content or "", language=language)]

    if node_type in ("bullet_list", "ordered_list"):
        ordered = node_type == "ordered_list"
        start = _as_int(node.attrs.get("start"), 1) if ordered else 1
        return [MarkdownNode(NodeKind.LIST, children=_convert_children(node), ordered=ordered, start=start)]

    if node_type == "table":
        rows = _convert_children(node)
        return [MarkdownNode(NodeKind.TABLE, children=rows, alignments=_column_alignments(node))]

    if node_type == "link":
        return [
            MarkdownNode(
                NodeKind.LINK,
                children=_convert_children(node),
                url=str(node.attrs.get("href", "")),
                title=_optional_str(node.attrs.get("title")),
            )
        ]

    if node_type == "image":
        return [
            MarkdownNode(
                NodeKind.IMAGE,
                children=_convert_children(node),
                literal=node.content or "",
                url=str(node.attrs.get("src", "")),
                title=_optional_str(node.attrs.get("title")),
            )
        ]

    logger.debug("Unsupported markdown-it node type: %s", node_type)
    return [MarkdownNode(NodeKind.UNKNOWN, literal=node_type)]


def _column_alignments(table: SyntaxTreeNode) -> list[ColumnAlignment]:
    """Read column alignment from the header cells' ``style`` attribute."""
    for section in table.children:
        for row in section.children:
            alignments: list[ColumnAlignment] = []
            for cell in row.children:
                match = _ALIGN_RE.search(str(cell.attrs.get("style", "")))
                alignments.append(ColumnAlignment.parse(match.group(1) if match else None))
            return alignments
    return []


def _take_task_checkbox(item: MarkdownNode) -> None:
    """Move a tasklists-plugin checkbox into ``item.checkbox``."""
    if not item.children or item.children[0].kind is not NodeKind.PARAGRAPH:
        return
    inlines = item.children[0].children
    if not inlines or inlines[0].kind is not NodeKind.HTML_INLINE:
        return
    marker = inlines[0].literal
    if "task-list-item-checkbox" not in marker:
        return

    item.checkbox = CheckboxState.CHECKED if _CHECKED_RE.search(marker) else CheckboxState.UNCHECKED
    del inlines[0]
    if inlines and inlines[0].kind is NodeKind.TEXT:
        inlines[0].literal = inlines[0].literal.removeprefix(" ")
        if not inlines[0].literal:
            del inlines[0]


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
