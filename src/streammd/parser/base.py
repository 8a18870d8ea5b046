"""Block model produced by the Markdown parser.

Everything here is immutable. A parse call builds a fresh tree of these values
and the next call supersedes it wholesale; renderers diff successive results by
``MarkdownBlock.id``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any, ClassVar


def content_digest(text: str, length: int = 12) -> str:
    """Stable short digest of *text* (identical across processes)."""
    return hashlib.sha1(text.encode("utf-8", errors="surrogatepass")).hexdigest()[:length]


# ---------------------------------------------------------------------------
# Inline elements
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Text:
    kind: ClassVar[str] = "text"
    text: str

    @property
    def plain_text(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class Emphasis:
    kind: ClassVar[str] = "emphasis"
    content: InlineContent

    @property
    def plain_text(self) -> str:
        return self.content.plain_text


@dataclass(frozen=True, slots=True)
class Strong:
    kind: ClassVar[str] = "strong"
    content: InlineContent

    @property
    def plain_text(self) -> str:
        return self.content.plain_text


@dataclass(frozen=True, slots=True)
class Strikethrough:
    kind: ClassVar[str] = "strikethrough"
    content: InlineContent

    @property
    def plain_text(self) -> str:
        return self.content.plain_text


@dataclass(frozen=True, slots=True)
class InlineCode:
    kind: ClassVar[str] = "code"
    code: str

    @property
    def plain_text(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Link:
    kind: ClassVar[str] = "link"
    content: InlineContent
    url: str
    title: str | None = None

    @property
    def plain_text(self) -> str:
        return self.content.plain_text


@dataclass(frozen=True, slots=True)
class InlineImage:
    kind: ClassVar[str] = "image"
    url: str
    alt: str | None = None
    title: str | None = None

    @property
    def plain_text(self) -> str:
        return self.alt or ""


@dataclass(frozen=True, slots=True)
class SoftBreak:
    kind: ClassVar[str] = "soft_break"

    @property
    def plain_text(self) -> str:
        return " "


@dataclass(frozen=True, slots=True)
class HardBreak:
    kind: ClassVar[str] = "hard_break"

    @property
    def plain_text(self) -> str:
        return "\n"


@dataclass(frozen=True, slots=True)
class InlineHtml:
    kind: ClassVar[str] = "html"
    html: str

    @property
    def plain_text(self) -> str:
        return self.html


@dataclass(frozen=True, slots=True)
class InlineMath:
    kind: ClassVar[str] = "math"
    latex: str

    @property
    def plain_text(self) -> str:
        return self.latex


@dataclass(frozen=True, slots=True)
class FootnoteRef:
    kind: ClassVar[str] = "footnote_reference"
    id: str

    @property
    def plain_text(self) -> str:
        return f"[{self.id}]"


InlineElement = (
    Text
    | Emphasis
    | Strong
    | Strikethrough
    | InlineCode
    | Link
    | InlineImage
    | SoftBreak
    | HardBreak
    | InlineHtml
    | InlineMath
    | FootnoteRef
)


@dataclass(frozen=True, slots=True)
class InlineContent:
    elements: tuple[InlineElement, ...] = ()

    @classmethod
    def from_text(cls, text: str) -> InlineContent:
        return cls((Text(text),))

    @property
    def is_empty(self) -> bool:
        return not self.elements

    @property
    def plain_text(self) -> str:
        return "".join(element.plain_text for element in self.elements)

    @property
    def contains_images(self) -> bool:
        """True if any element is an image, or a link wrapping one (badge pattern)."""
        for element in self.elements:
            if isinstance(element, InlineImage):
                return True
            if isinstance(element, Link) and element.content.contains_images:
                return True
        return False


# ---------------------------------------------------------------------------
# Lists and tables
# ---------------------------------------------------------------------------

class CheckboxState(str, Enum):
    CHECKED = "checked"
    UNCHECKED = "unchecked"


class ColumnAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    NONE = "none"

    @classmethod
    def parse(cls, value: str | None) -> ColumnAlignment:
        try:
            return cls((value or "none").strip().lower())
        except ValueError:
            return cls.NONE


@dataclass(frozen=True, slots=True)
class ListItem:
    content: InlineContent
    children: tuple[ListItem, ...] = ()
    checkbox: CheckboxState | None = None
    depth: int = 0
    list_ordered: bool = False
    list_start_index: int = 1
    item_index: int = 0
    id: str = field(default="", compare=False)

    @classmethod
    def create(
        cls,
        content: InlineContent,
        *,
        children: tuple[ListItem, ...] = (),
        checkbox: CheckboxState | None = None,
        depth: int = 0,
        index: int = 0,
        list_ordered: bool = False,
        list_start_index: int = 1,
    ) -> ListItem:
        order_tag = "o" if list_ordered else "u"
        item_id = f"li-{depth}-{index}-{order_tag}-{content_digest(content.plain_text)}"
        return cls(
            content=content,
            children=children,
            checkbox=checkbox,
            depth=depth,
            list_ordered=list_ordered,
            list_start_index=list_start_index,
            item_index=index,
            id=item_id,
        )

    @property
    def plain_text(self) -> str:
        parts = [self.content.plain_text]
        parts.extend(child.plain_text for child in self.children)
        return "\n".join(parts)


@dataclass(frozen=True, slots=True)
class TableRow:
    cells: tuple[InlineContent, ...]
    is_header: bool = False
    id: str = field(default="", compare=False)

    @classmethod
    def create(cls, cells: tuple[InlineContent, ...], *, is_header: bool = False, index: int = 0) -> TableRow:
        return cls(cells=cells, is_header=is_header, id=f"row-{'h' if is_header else 'b'}-{index}")


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Paragraph:
    kind: ClassVar[str] = "paragraph"
    content: InlineContent


@dataclass(frozen=True, slots=True)
class Heading:
    kind: ClassVar[str] = "heading"
    content: InlineContent
    level: int


@dataclass(frozen=True, slots=True)
class CodeBlock:
    kind: ClassVar[str] = "code_block"
    code: str
    language: str | None = None
    streaming: bool = False


@dataclass(frozen=True, slots=True)
class ListBlock:
    kind: ClassVar[str] = "list"
    items: tuple[ListItem, ...]
    ordered: bool = False
    start_index: int = 1


@dataclass(frozen=True, slots=True)
class BlockQuote:
    kind: ClassVar[str] = "block_quote"
    blocks: tuple[MarkdownBlock, ...]


@dataclass(frozen=True, slots=True)
class Table:
    kind: ClassVar[str] = "table"
    rows: tuple[TableRow, ...]
    alignments: tuple[ColumnAlignment, ...] = ()


@dataclass(frozen=True, slots=True)
class ImageBlock:
    kind: ClassVar[str] = "image"
    url: str
    alt: str | None = None


@dataclass(frozen=True, slots=True)
class ThematicBreak:
    kind: ClassVar[str] = "thematic_break"


@dataclass(frozen=True, slots=True)
class HtmlBlock:
    kind: ClassVar[str] = "html_block"
    html: str


@dataclass(frozen=True, slots=True)
class MermaidDiagram:
    kind: ClassVar[str] = "mermaid_diagram"
    code: str


@dataclass(frozen=True, slots=True)
class MathBlock:
    kind: ClassVar[str] = "math_block"
    latex: str


@dataclass(frozen=True, slots=True)
class FootnoteReference:
    kind: ClassVar[str] = "footnote_reference"
    id: str


@dataclass(frozen=True, slots=True)
class FootnoteDefinition:
    kind: ClassVar[str] = "footnote_definition"
    id: str
    blocks: tuple[MarkdownBlock, ...]


BlockType = (
    Paragraph
    | Heading
    | CodeBlock
    | ListBlock
    | BlockQuote
    | Table
    | ImageBlock
    | ThematicBreak
    | HtmlBlock
    | MermaidDiagram
    | MathBlock
    | FootnoteReference
    | FootnoteDefinition
)


def _block_id(block: BlockType, index: int) -> str:
    if isinstance(block, Paragraph):
        return f"p-{index}-{content_digest(block.content.plain_text)}"
    if isinstance(block, Heading):
        return f"h{block.level}-{index}-{content_digest(block.content.plain_text)}"
    if isinstance(block, CodeBlock):
        return f"code-{index}-{block.language or 'plain'}-{content_digest(block.code[:50])}"
    if isinstance(block, ListBlock):
        tag = "o" if block.ordered else "u"
        items_key = "|".join(item.id for item in block.items)
        return f"list-{tag}-{index}-{len(block.items)}-{content_digest(items_key)}"
    if isinstance(block, BlockQuote):
        inner_key = "|".join(child.id for child in block.blocks)
        return f"quote-{index}-{len(block.blocks)}-{content_digest(inner_key)}"
    if isinstance(block, Table):
        cells_key = "|".join(cell.plain_text for row in block.rows for cell in row.cells)
        return f"table-{index}-{len(block.rows)}-{content_digest(cells_key)}"
    if isinstance(block, ImageBlock):
        return f"img-{index}-{content_digest(block.url)}"
    if isinstance(block, ThematicBreak):
        return f"hr-{index}"
    if isinstance(block, HtmlBlock):
        return f"html-{index}-{content_digest(block.html[:50])}"
    if isinstance(block, MermaidDiagram):
        return f"mermaid-{index}-{content_digest(block.code[:50])}"
    if isinstance(block, MathBlock):
        return f"math-{index}-{content_digest(block.latex)}"
    if isinstance(block, FootnoteReference):
        return f"fnref-{index}-{block.id}"
    if isinstance(block, FootnoteDefinition):
        return f"fndef-{index}-{block.id}"
    raise TypeError(f"Unsupported block type: {type(block).__name__}")


@dataclass(frozen=True, slots=True)
class MarkdownBlock:
    id: str
    type: BlockType

    @classmethod
    def create(cls, block_type: BlockType, index: int = 0) -> MarkdownBlock:
        return cls(id=_block_id(block_type, index), type=block_type)


@dataclass(frozen=True, slots=True)
class ParsedMarkdownDocument:
    blocks: tuple[MarkdownBlock, ...] = ()
    footnotes: dict[str, MarkdownBlock] = field(default_factory=dict)
    is_complete: bool = True
    streaming_buffer: str = ""

    @classmethod
    def empty(cls) -> ParsedMarkdownDocument:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks": [to_dict(block) for block in self.blocks],
            "footnotes": {key: to_dict(block) for key, block in self.footnotes.items()},
            "is_complete": self.is_complete,
            "streaming_buffer": self.streaming_buffer,
        }


def to_dict(value: Any) -> Any:
    """Convert model values into JSON-compatible structures.

    Variant dataclasses carry their ``kind`` tag under ``"type"``.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, MarkdownBlock):
        return {"id": value.id, **to_dict(value.type)}
    if isinstance(value, InlineContent):
        return [to_dict(element) for element in value.elements]
    if is_dataclass(value) and not isinstance(value, type):
        result: dict[str, Any] = {}
        kind = getattr(type(value), "kind", None)
        if kind is not None:
            result["type"] = kind
        for f in fields(value):
            result[f.name] = to_dict(getattr(value, f.name))
        return result
    if isinstance(value, (list, tuple)):
        return [to_dict(item) for item in value]
    if isinstance(value, dict):
        return {key: to_dict(item) for key, item in value.items()}
    return value
