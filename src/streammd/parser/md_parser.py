"""Streaming-aware Markdown parser producing the block model in ``base``.

Pipeline: display math extraction -> AST provider per Markdown segment ->
block parsing (with inline rescans) -> document assembly. Streaming parses
first cut the input at the last stable boundary and parse only that prefix.
"""

from __future__ import annotations

import logging

from .ast import AstProvider, MarkdownItProvider, MarkdownNode, NodeKind, ParserOptions
from .base import (
    BlockQuote,
    CheckboxState,
    CodeBlock,
    ColumnAlignment,
    Emphasis,
    FootnoteDefinition,
    FootnoteRef,
    Heading,
    HtmlBlock,
    ImageBlock,
    InlineContent,
    InlineElement,
    InlineMath,
    Link,
    ListBlock,
    ListItem,
    MarkdownBlock,
    MathBlock,
    MermaidDiagram,
    Paragraph,
    ParsedMarkdownDocument,
    Strikethrough,
    Strong,
    Table,
    TableRow,
    Text,
    ThematicBreak,
)
from .boundary import find_stable_boundary
from .inline_parser import image_alt, parse_inline
from .math_segments import extract_math_segments

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Paragraph reclassification heuristics
# ---------------------------------------------------------------------------

LATEX_PATTERNS = (
    "\\frac", "\\sqrt", "\\sum", "\\int", "\\prod", "\\lim",
    "\\begin{", "\\end{", "^{", "_{", "\\alpha", "\\beta",
    "\\gamma", "\\delta", "\\theta", "\\pi", "\\infty",
    "\\partial", "\\nabla", "\\times", "\\cdot", "\\pm",
)

LATEX_BLOCK_PATTERNS = (
    "\\frac{", "\\sqrt{", "\\sum_", "\\sum^", "\\int_", "\\int^",
    "\\prod_", "\\lim_", "\\begin{", "\\left", "\\right",
    "\\mathbf{", "\\mathrm{", "\\text{",
)

MATH_LANGUAGES = frozenset({"math", "latex", "tex"})

_CHECKBOX_PREFIXES = (
    ("[ ] ", CheckboxState.UNCHECKED),
    ("[x] ", CheckboxState.CHECKED),
    ("[X] ", CheckboxState.CHECKED),
)


def looks_like_latex(text: str) -> bool:
    return any(pattern in text for pattern in LATEX_PATTERNS)


def looks_like_latex_block(text: str) -> bool:
    """Approximate test for a bare LaTeX equation written without ``$`` delimiters."""
    trimmed = text.strip()
    if not trimmed.startswith("\\"):
        return False
    return any(pattern in trimmed for pattern in LATEX_BLOCK_PATTERNS)


def source_text(content: InlineContent) -> str:
    """Flatten inline content back towards its Markdown spelling.

    Unlike ``plain_text`` this keeps ``$`` around inline math and the ``[^id]``
    form of footnote references, which the paragraph heuristics match on.
    """
    parts: list[str] = []
    for element in content.elements:
        if isinstance(element, InlineMath):
            parts.append(f"${element.latex}$")
        elif isinstance(element, FootnoteRef):
            parts.append(f"[^{element.id}]")
        elif isinstance(element, (Emphasis, Strong, Strikethrough, Link)):
            parts.append(source_text(element.content))
        else:
            parts.append(element.plain_text)
    return "".join(parts)


def extract_footnote_definition(content: InlineContent) -> tuple[str, InlineContent] | None:
    """Match a ``[^id]: rest`` paragraph; return ``(id, rest)``."""
    elements = content.elements
    if len(elements) < 2:
        return None
    head, separator = elements[0], elements[1]
    if not isinstance(head, FootnoteRef):
        return None
    if not isinstance(separator, Text) or not separator.text.startswith(":"):
        return None

    first = separator.text[1:].lstrip()
    rest: tuple[InlineElement, ...] = ((Text(first),) if first else ()) + elements[2:]
    return head.id, InlineContent(rest)


def extract_standalone_math(content: InlineContent) -> str | None:
    """Return LaTeX if the paragraph is really a display equation."""
    text = source_text(content).strip()

    if len(text) >= 2 and text.startswith("$") and text.endswith("$") and not text.startswith("$$"):
        inner = text[1:-1].strip()
        if inner and "$" not in inner and looks_like_latex(inner):
            return inner

    if looks_like_latex_block(text):
        return text

    return None


# ---------------------------------------------------------------------------
# Block parsing
# ---------------------------------------------------------------------------

class BlockParser:
    """Map provider block nodes onto ``MarkdownBlock`` values."""

    def parse_block(self, node: MarkdownNode, index: int) -> MarkdownBlock | None:
        kind = node.kind

        if kind is NodeKind.PARAGRAPH:
            return self._parse_paragraph(node, index)
        if kind is NodeKind.HEADING:
            level = max(1, min(6, node.level))
            return MarkdownBlock.create(Heading(parse_inline(node.children), level=level), index)
        if kind is NodeKind.CODE_BLOCK:
            return self._parse_code_block(node, index)
        if kind is NodeKind.LIST:
            return self._parse_list(node, index)
        if kind is NodeKind.BLOCK_QUOTE:
            return self._parse_block_quote(node, index)
        if kind is NodeKind.TABLE:
            return self._parse_table(node, index)
        if kind is NodeKind.THEMATIC_BREAK:
            return MarkdownBlock.create(ThematicBreak(), index)
        if kind is NodeKind.HTML_BLOCK:
            return MarkdownBlock.create(HtmlBlock(node.literal), index)

        logger.debug("Dropping block node of kind %s (%s)", kind.value, node.literal)
        return None

    def parse_blocks(self, nodes: list[MarkdownNode]) -> list[MarkdownBlock]:
        blocks: list[MarkdownBlock] = []
        for index, node in enumerate(nodes):
            block = self.parse_block(node, index)
            if block is not None:
                blocks.append(block)
        return blocks

    def _parse_paragraph(self, node: MarkdownNode, index: int) -> MarkdownBlock | None:
        children = node.children
        if len(children) == 1 and children[0].kind is NodeKind.IMAGE:
            image = children[0]
            return MarkdownBlock.create(ImageBlock(url=image.url or "", alt=image_alt(image)), index)

        content = parse_inline(children)
        if content.is_empty:
            return None

        footnote = extract_footnote_definition(content)
        if footnote is not None:
            footnote_id, rest = footnote
            body = MarkdownBlock.create(Paragraph(rest), 0)
            return MarkdownBlock.create(FootnoteDefinition(id=footnote_id, blocks=(body,)), index)

        latex = extract_standalone_math(content)
        if latex is not None:
            return MarkdownBlock.create(MathBlock(latex), index)

        return MarkdownBlock.create(Paragraph(content), index)

    def _parse_code_block(self, node: MarkdownNode, index: int) -> MarkdownBlock:
        code = node.literal.removesuffix("\n")
        language = node.language.lower() if node.language else None

        if language == "mermaid":
            return MarkdownBlock.create(MermaidDiagram(code), index)
        if language in MATH_LANGUAGES:
            return MarkdownBlock.create(MathBlock(code.strip()), index)
        return MarkdownBlock.create(CodeBlock(code=code, language=node.language, streaming=False), index)

    def _parse_list(self, node: MarkdownNode, index: int) -> MarkdownBlock:
        start = node.start if node.ordered else 1
        items = tuple(
            self._parse_list_item(item, depth=0, index=item_index, ordered=node.ordered, start=start)
            for item_index, item in enumerate(_list_items(node))
        )
        return MarkdownBlock.create(ListBlock(items=items, ordered=node.ordered, start_index=start), index)

    def _parse_list_item(
        self,
        item: MarkdownNode,
        *,
        depth: int,
        index: int,
        ordered: bool,
        start: int,
    ) -> ListItem:
        inline_nodes: list[MarkdownNode] = []
        nested_lists: list[MarkdownNode] = []
        seen_paragraph = False

        for child in item.children:
            if child.kind is NodeKind.LIST:
                nested_lists.append(child)
            elif child.kind is NodeKind.PARAGRAPH:
                if seen_paragraph:
                    inline_nodes.append(MarkdownNode(NodeKind.HARD_BREAK))
                inline_nodes.extend(child.children)
                seen_paragraph = True
            else:
                inline_nodes.append(child)

        content = parse_inline(inline_nodes)
        checkbox = item.checkbox
        if checkbox is None:
            checkbox, content = _strip_checkbox_marker(content)

        children: list[ListItem] = []
        for nested in nested_lists:
            nested_start = nested.start if nested.ordered else 1
            for nested_index, nested_item in enumerate(_list_items(nested)):
                children.append(
                    self._parse_list_item(
                        nested_item,
                        depth=depth + 1,
                        index=nested_index,
                        ordered=nested.ordered,
                        start=nested_start,
                    )
                )

        return ListItem.create(
            content,
            children=tuple(children),
            checkbox=checkbox,
            depth=depth,
            index=index,
            list_ordered=ordered,
            list_start_index=start,
        )

    def _parse_block_quote(self, node: MarkdownNode, index: int) -> MarkdownBlock:
        return MarkdownBlock.create(BlockQuote(tuple(self.parse_blocks(node.children))), index)

    def _parse_table(self, node: MarkdownNode, index: int) -> MarkdownBlock:
        rows: list[TableRow] = []
        for row_index, row in enumerate(child for child in node.children if child.kind is NodeKind.TABLE_ROW):
            cells = tuple(parse_inline(cell.children) for cell in row.children)
            rows.append(TableRow.create(cells, is_header=row_index == 0, index=row_index))

        columns = max((len(row.cells) for row in rows), default=0)
        alignments = list(node.alignments[:columns])
        alignments.extend([ColumnAlignment.NONE] * (columns - len(alignments)))
        return MarkdownBlock.create(Table(rows=tuple(rows), alignments=tuple(alignments)), index)


def _list_items(node: MarkdownNode) -> list[MarkdownNode]:
    return [child for child in node.children if child.kind is NodeKind.LIST_ITEM]


def _strip_checkbox_marker(content: InlineContent) -> tuple[CheckboxState | None, InlineContent]:
    """Read a literal ``[ ] `` / ``[x] `` prefix from the first text run."""
    if content.is_empty or not isinstance(content.elements[0], Text):
        return None, content

    first = content.elements[0].text
    for prefix, state in _CHECKBOX_PREFIXES:
        if first.startswith(prefix):
            remainder = first[len(prefix):]
            head: tuple[InlineElement, ...] = (Text(remainder),) if remainder else ()
            return state, InlineContent(head + content.elements[1:])
    return None, content


# ---------------------------------------------------------------------------
# Document assembly
# ---------------------------------------------------------------------------

class MarkdownParser:
    """Parse complete or streaming Markdown into a ``ParsedMarkdownDocument``."""

    def __init__(self, options: ParserOptions | None = None, provider: AstProvider | None = None) -> None:
        self.options = options or ParserOptions()
        self.provider = provider or MarkdownItProvider(self.options)
        self._blocks = BlockParser()

    def parse(self, content: str) -> ParsedMarkdownDocument:
        if not isinstance(content, str):
            raise TypeError(f"content must be str, not {type(content).__name__}")
        if not content:
            return ParsedMarkdownDocument.empty()

        blocks: list[MarkdownBlock] = []
        footnotes: dict[str, MarkdownBlock] = {}
        index = 0

        for segment in extract_math_segments(content):
            if segment.is_math:
                blocks.append(MarkdownBlock.create(MathBlock(segment.content), index))
                index += 1
                continue

            for node in self._parse_segment(segment.content):
                block = self._blocks.parse_block(node, index)
                index += 1
                if block is None:
                    continue
                if isinstance(block.type, FootnoteDefinition):
                    if block.type.id in footnotes:
                        logger.debug("Footnote [^%s] defined again; later definition wins", block.type.id)
                    footnotes[block.type.id] = block
                else:
                    blocks.append(block)

        return ParsedMarkdownDocument(
            blocks=tuple(blocks),
            footnotes=footnotes,
            is_complete=True,
            streaming_buffer="",
        )

    def parse_streaming(self, content: str, is_complete: bool = False) -> ParsedMarkdownDocument:
        """Parse the stable prefix of *content*; the rest is returned unparsed.

        When nothing is pending (empty buffer) the result is a full parse and
        reports ``is_complete=True`` even though the stream may continue.
        """
        if is_complete:
            return self.parse(content)
        if not isinstance(content, str):
            raise TypeError(f"content must be str, not {type(content).__name__}")

        split = find_stable_boundary(content)
        if not split.buffer:
            return self.parse(content)
        if not split.stable:
            return ParsedMarkdownDocument(is_complete=False, streaming_buffer=split.buffer)

        result = self.parse(split.stable)
        return ParsedMarkdownDocument(
            blocks=result.blocks,
            footnotes=result.footnotes,
            is_complete=False,
            streaming_buffer=split.buffer,
        )

    def _parse_segment(self, text: str) -> list[MarkdownNode]:
        try:
            root = self.provider.parse(text)
        except Exception:
            logger.warning("AST provider failed; keeping segment as plain text", exc_info=True)
            stripped = text.strip()
            if not stripped:
                return []
            return [MarkdownNode(NodeKind.PARAGRAPH, children=[MarkdownNode(NodeKind.TEXT, literal=stripped)])]
        return root.children


def footnote_order(document: ParsedMarkdownDocument) -> list[str]:
    """Footnote ids in first-reference order, then unreferenced definitions."""
    order: list[str] = []

    def visit_inline(content: InlineContent) -> None:
        for element in content.elements:
            if isinstance(element, FootnoteRef):
                if element.id not in order:
                    order.append(element.id)
            elif isinstance(element, (Emphasis, Strong, Strikethrough, Link)):
                visit_inline(element.content)

    def visit_items(items: tuple[ListItem, ...]) -> None:
        for item in items:
            visit_inline(item.content)
            visit_items(item.children)

    def visit_blocks(blocks: tuple[MarkdownBlock, ...]) -> None:
        for block in blocks:
            block_type = block.type
            if isinstance(block_type, (Paragraph, Heading)):
                visit_inline(block_type.content)
            elif isinstance(block_type, ListBlock):
                visit_items(block_type.items)
            elif isinstance(block_type, (BlockQuote, FootnoteDefinition)):
                visit_blocks(block_type.blocks)
            elif isinstance(block_type, Table):
                for row in block_type.rows:
                    for cell in row.cells:
                        visit_inline(cell)

    visit_blocks(document.blocks)
    visit_blocks(tuple(document.footnotes.values()))
    for footnote_id in document.footnotes:
        if footnote_id not in order:
            order.append(footnote_id)
    return order


_default_parser: MarkdownParser | None = None


def get_parser() -> MarkdownParser:
    """Shared parser instance with default options."""
    global _default_parser
    if _default_parser is None:
        _default_parser = MarkdownParser()
    return _default_parser


def parse_markdown(content: str, is_streaming: bool = False) -> ParsedMarkdownDocument:
    parser = get_parser()
    if is_streaming:
        return parser.parse_streaming(content)
    return parser.parse(content)
