"""Parser package."""

from .ast import AstProvider, MarkdownItProvider, MarkdownNode, NodeKind, ParserOptions
from .base import (
    CheckboxState,
    ColumnAlignment,
    InlineContent,
    ListItem,
    MarkdownBlock,
    ParsedMarkdownDocument,
    TableRow,
)
from .boundary import StableSplit, find_stable_boundary
from .cache import ParseCache
from .grouping import ImageRow, RowImage, SpecialBlock, TextGroup, group_blocks
from .math_segments import Segment, extract_math_segments
from .md_parser import MarkdownParser, footnote_order, parse_markdown

__all__ = [
    "AstProvider",
    "MarkdownItProvider",
    "MarkdownNode",
    "NodeKind",
    "ParserOptions",
    "CheckboxState",
    "ColumnAlignment",
    "InlineContent",
    "ListItem",
    "MarkdownBlock",
    "ParsedMarkdownDocument",
    "TableRow",
    "StableSplit",
    "find_stable_boundary",
    "ParseCache",
    "ImageRow",
    "RowImage",
    "SpecialBlock",
    "TextGroup",
    "group_blocks",
    "Segment",
    "extract_math_segments",
    "MarkdownParser",
    "footnote_order",
    "parse_markdown",
]
