"""Tests for the Markdown parser.

Covers:
- Headings, paragraphs, block quotes, thematic breaks, HTML blocks
- Display math ($$...$$), fenced math, standalone and bare LaTeX paragraphs
- Fenced code and mermaid diagrams
- Images and badge paragraphs
- Lists (ordered start, nesting depth, checkboxes)
- Tables and column alignment
- Footnotes ([^label] / [^label]: definition)
- Streaming parses, block identity, totality
"""

from __future__ import annotations

import pytest

from streammd.parser.ast import MarkdownNode, NodeKind, ParserOptions
from streammd.parser.base import (
    BlockQuote,
    CheckboxState,
    CodeBlock,
    ColumnAlignment,
    FootnoteDefinition,
    FootnoteRef,
    HardBreak,
    Heading,
    HtmlBlock,
    ImageBlock,
    InlineContent,
    InlineMath,
    Link,
    ListBlock,
    MathBlock,
    MermaidDiagram,
    Paragraph,
    ParsedMarkdownDocument,
    SoftBreak,
    Table,
    Text,
    ThematicBreak,
)
from streammd.parser.md_parser import MarkdownParser, footnote_order, parse_markdown


def _parse(content: str, **options) -> ParsedMarkdownDocument:
    return MarkdownParser(ParserOptions(**options)).parse(content)


def _types(document: ParsedMarkdownDocument) -> list[type]:
    return [type(block.type) for block in document.blocks]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

def test_heading_and_paragraph() -> None:
    document = _parse("# Hello\n\nWorld")
    assert [block.type for block in document.blocks] == [
        Heading(InlineContent.from_text("Hello"), level=1),
        Paragraph(InlineContent.from_text("World")),
    ]
    assert document.is_complete
    assert document.streaming_buffer == ""


def test_streaming_unclosed_fence() -> None:
    document = MarkdownParser().parse_streaming("```py\nprint(1")
    assert document.blocks == ()
    assert document.footnotes == {}
    assert not document.is_complete
    assert document.streaming_buffer == "```py\nprint(1"


def test_display_math_block() -> None:
    document = _parse("$$\\frac{1}{2}$$")
    assert [block.type for block in document.blocks] == [MathBlock("\\frac{1}{2}")]


def test_task_list_checkboxes() -> None:
    document = _parse("- [ ] task\n- [x] done")
    (block,) = document.blocks
    assert isinstance(block.type, ListBlock)
    items = block.type.items
    assert [item.checkbox for item in items] == [CheckboxState.UNCHECKED, CheckboxState.CHECKED]
    assert [item.content.plain_text for item in items] == ["task", "done"]
    assert [item.depth for item in items] == [0, 0]


def test_task_list_checkboxes_without_plugin() -> None:
    document = _parse("- [ ] task\n- [X] done", task_lists=False)
    items = document.blocks[0].type.items
    assert [item.checkbox for item in items] == [CheckboxState.UNCHECKED, CheckboxState.CHECKED]
    assert [item.content.plain_text for item in items] == ["task", "done"]


def test_image_only_paragraph_becomes_image_block() -> None:
    document = _parse("![alt](http://x/y.png)")
    assert [block.type for block in document.blocks] == [ImageBlock(url="http://x/y.png", alt="alt")]


def test_footnote_reference_and_definition() -> None:
    document = _parse("Note[^1]\n\n[^1]: detail")
    assert [block.type for block in document.blocks] == [
        Paragraph(InlineContent((Text("Note"), FootnoteRef("1")))),
    ]
    assert list(document.footnotes) == ["1"]
    definition = document.footnotes["1"].type
    assert isinstance(definition, FootnoteDefinition)
    assert definition.id == "1"
    assert [child.type for child in definition.blocks] == [Paragraph(InlineContent.from_text("detail"))]


# ---------------------------------------------------------------------------
# Math
# ---------------------------------------------------------------------------

def test_unbalanced_display_math_yields_one_block() -> None:
    document = _parse("$$a$$ and $$b")
    math_blocks = [block for block in document.blocks if isinstance(block.type, MathBlock)]
    assert [block.type.latex for block in math_blocks] == ["a"]
    assert "$$b" in document.blocks[-1].type.content.plain_text


def test_unclosed_display_math_is_paragraph() -> None:
    document = _parse("text $$ a")
    assert _types(document) == [Paragraph]


def test_display_math_inside_fence_is_code() -> None:
    document = _parse("```\n$$x$$\n```")
    assert [block.type for block in document.blocks] == [CodeBlock(code="$$x$$", language=None)]


def test_fenced_math_languages() -> None:
    for language in ("math", "latex", "TeX"):
        document = _parse(f"```{language}\nE = mc^2\n```")
        assert [block.type for block in document.blocks] == [MathBlock("E = mc^2")]


def test_standalone_inline_math_paragraph_becomes_math_block() -> None:
    document = _parse("$\\frac{a}{b}$")
    assert [block.type for block in document.blocks] == [MathBlock("\\frac{a}{b}")]


def test_bare_latex_paragraph_becomes_math_block() -> None:
    document = _parse("\\sum_{i=1}^n i")
    assert [block.type for block in document.blocks] == [MathBlock("\\sum_{i=1}^n i")]


def test_inline_math_stays_in_paragraph() -> None:
    document = _parse("Energy $E=mc^2$ holds")
    (block,) = document.blocks
    assert isinstance(block.type, Paragraph)
    assert InlineMath("E=mc^2") in block.type.content.elements


def test_currency_paragraph_is_not_math() -> None:
    document = _parse("The price is $5")
    assert _types(document) == [Paragraph]


# ---------------------------------------------------------------------------
# Code, quotes, breaks, HTML
# ---------------------------------------------------------------------------

def test_fenced_code_block() -> None:
    document = _parse("```python\nprint(1)\n```")
    assert [block.type for block in document.blocks] == [
        CodeBlock(code="print(1)", language="python", streaming=False)
    ]


def test_mermaid_block() -> None:
    document = _parse("```Mermaid\ngraph TD\nA-->B\n```")
    assert [block.type for block in document.blocks] == [MermaidDiagram("graph TD\nA-->B")]


def test_block_quote_recurses() -> None:
    document = _parse("> quoted\n> text")
    (block,) = document.blocks
    assert isinstance(block.type, BlockQuote)
    (inner,) = block.type.blocks
    assert inner.type == Paragraph(InlineContent((Text("quoted"), SoftBreak(), Text("text"))))


def test_thematic_break_and_html_block() -> None:
    document = _parse("a\n\n---\n\n<div>hi</div>\n\nb")
    assert _types(document) == [Paragraph, ThematicBreak, HtmlBlock, Paragraph]
    assert document.blocks[2].type.html.strip() == "<div>hi</div>"


def test_link_with_title() -> None:
    document = _parse('[site](http://x "T")')
    (link,) = document.blocks[0].type.content.elements
    assert link == Link(InlineContent.from_text("site"), url="http://x", title="T")


def test_reference_links_still_resolve() -> None:
    document = _parse("[site][ref]\n\n[ref]: http://example.com")
    (link,) = document.blocks[0].type.content.elements
    assert isinstance(link, Link)
    assert link.url == "http://example.com"


# ---------------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------------

def test_ordered_list_start_index() -> None:
    document = _parse("3. a\n4. b")
    block = document.blocks[0].type
    assert isinstance(block, ListBlock)
    assert block.ordered
    assert block.start_index == 3
    assert [(item.list_start_index, item.item_index) for item in block.items] == [(3, 0), (3, 1)]
    assert all(item.list_ordered for item in block.items)


def test_nested_list_depth() -> None:
    document = _parse("- a\n  - b\n    - c\n- d")
    items = document.blocks[0].type.items
    assert [item.content.plain_text for item in items] == ["a", "d"]
    child = items[0].children[0]
    grandchild = child.children[0]
    assert (child.depth, child.content.plain_text) == (1, "b")
    assert (grandchild.depth, grandchild.content.plain_text) == (2, "c")


def test_nested_ordered_list_inside_bullets() -> None:
    document = _parse("- a\n  1. one\n  2. two")
    (item,) = document.blocks[0].type.items
    assert [child.list_ordered for child in item.children] == [True, True]
    assert [child.item_index for child in item.children] == [0, 1]


def test_list_item_paragraphs_are_hoisted() -> None:
    document = _parse("- first\n\n  second")
    (item,) = document.blocks[0].type.items
    assert item.content.elements == (Text("first"), HardBreak(), Text("second"))


def test_native_checkbox_attribute_wins() -> None:
    class Provider:
        def parse(self, text: str) -> MarkdownNode:
            item = MarkdownNode(
                NodeKind.LIST_ITEM,
                checkbox=CheckboxState.CHECKED,
                children=[MarkdownNode(NodeKind.PARAGRAPH, children=[MarkdownNode(NodeKind.TEXT, literal="[ ] kept")])],
            )
            return MarkdownNode(NodeKind.DOCUMENT, children=[MarkdownNode(NodeKind.LIST, children=[item])])

    document = MarkdownParser(provider=Provider()).parse("anything")
    (item,) = document.blocks[0].type.items
    assert item.checkbox is CheckboxState.CHECKED
    assert item.content.plain_text == "[ ] kept"


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def test_table_rows_and_alignment() -> None:
    document = _parse("| A | B | C |\n|:--|--:|---|\n| 1 | 2 | 3 |\n| 4 | 5 | 6 |")
    table = document.blocks[0].type
    assert isinstance(table, Table)
    assert [row.is_header for row in table.rows] == [True, False, False]
    assert [cell.plain_text for cell in table.rows[0].cells] == ["A", "B", "C"]
    assert [cell.plain_text for cell in table.rows[2].cells] == ["4", "5", "6"]
    assert table.alignments == (ColumnAlignment.LEFT, ColumnAlignment.RIGHT, ColumnAlignment.NONE)


def test_tables_can_be_disabled() -> None:
    document = _parse("| A |\n|---|\n| 1 |", tables=False)
    assert _types(document) == [Paragraph]


# ---------------------------------------------------------------------------
# Footnotes
# ---------------------------------------------------------------------------

def test_bodyless_footnote_keeps_one_empty_paragraph() -> None:
    document = _parse("[^x]:")
    definition = document.footnotes["x"].type
    assert [child.type for child in definition.blocks] == [Paragraph(InlineContent())]


def test_duplicate_footnote_last_wins() -> None:
    document = _parse("[^a]: one\n\n[^a]: two")
    assert document.blocks == ()
    definition = document.footnotes["a"].type
    assert definition.blocks[0].type.content.plain_text == "two"


def test_footnote_definition_keeps_formatting() -> None:
    document = _parse("[^n]: see **this**")
    definition = document.footnotes["n"].type
    assert definition.blocks[0].type.content.plain_text == "see this"


def test_footnote_order_follows_references() -> None:
    document = _parse("B[^b] then A[^a]\n\n[^a]: first\n\n[^b]: second\n\n[^c]: unused")
    assert footnote_order(document) == ["b", "a", "c"]


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------

def test_streaming_parses_only_stable_prefix() -> None:
    document = parse_markdown("# Title\n\nPartial para", is_streaming=True)
    assert _types(document) == [Heading]
    assert not document.is_complete
    assert document.streaming_buffer == "Partial para"


def test_streaming_with_nothing_pending_is_complete() -> None:
    document = MarkdownParser().parse_streaming("a\n\n")
    assert document.is_complete
    assert document.streaming_buffer == ""
    assert _types(document) == [Paragraph]


def test_streaming_complete_flag_matches_full_parse() -> None:
    parser = MarkdownParser()
    content = "# T\n\nbody ```"
    assert parser.parse_streaming(content, is_complete=True) == parser.parse(content)


def test_streaming_block_ids_are_stable() -> None:
    parser = MarkdownParser()
    full = "# Title\n\nFirst paragraph.\n\nSecond paragraph grows"
    earlier = parser.parse_streaming(full[:30])
    later = parser.parse_streaming(full)
    assert [b.id for b in later.blocks[: len(earlier.blocks)]] == [b.id for b in earlier.blocks]


# ---------------------------------------------------------------------------
# Identity and totality
# ---------------------------------------------------------------------------

def test_parse_is_idempotent() -> None:
    content = "# A\n\n- x\n- y\n\n$$z$$\n\n| a |\n|---|\n| b |\n\n> q"
    parser = MarkdownParser()
    assert parser.parse(content).blocks == parser.parse(content).blocks


def test_block_ids_depend_on_content_and_position() -> None:
    first = _parse("# Hello\n\nWorld")
    second = _parse("# Hello\n\nEarth")
    assert first.blocks[0].id == second.blocks[0].id
    assert first.blocks[1].id != second.blocks[1].id
    assert first.blocks[0].id.startswith("h1-0-")
    assert first.blocks[1].id.startswith("p-1-")


def test_empty_input() -> None:
    assert _parse("") == ParsedMarkdownDocument.empty()


def test_non_string_input_is_rejected() -> None:
    with pytest.raises(TypeError):
        MarkdownParser().parse(b"# bytes")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "content",
    [
        "\x00\x01\x02",
        "[^",
        "$",
        "```",
        "|||\n|-|",
        "> " * 200 + "x",
        "- " * 100 + "x",
        "*" * 1000,
        "[" * 500,
        bytes(range(256)).decode("latin-1"),
        "$$\n```\n$$\n```",
        "🙂́$x$[^é]",
    ],
)
def test_parse_is_total(content: str) -> None:
    parser = MarkdownParser()
    assert isinstance(parser.parse(content), ParsedMarkdownDocument)
    streamed = parser.parse_streaming(content)
    assert isinstance(streamed, ParsedMarkdownDocument)


def test_provider_failure_degrades_to_text() -> None:
    class Broken:
        def parse(self, text: str) -> MarkdownNode:
            raise RuntimeError("boom")

    document = MarkdownParser(provider=Broken()).parse("hello\n\n$$x$$")
    assert [block.type for block in document.blocks] == [
        Paragraph(InlineContent.from_text("hello")),
        MathBlock("x"),
    ]
