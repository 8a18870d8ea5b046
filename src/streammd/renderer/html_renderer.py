"""Render a ParsedMarkdownDocument into a self-contained HTML page."""

from __future__ import annotations

import html
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from streammd.parser.base import (
    BlockQuote,
    CheckboxState,
    CodeBlock,
    ColumnAlignment,
    Emphasis,
    FootnoteDefinition,
    FootnoteRef,
    FootnoteReference,
    HardBreak,
    Heading,
    HtmlBlock,
    ImageBlock,
    InlineCode,
    InlineContent,
    InlineHtml,
    InlineImage,
    InlineMath,
    Link,
    ListBlock,
    ListItem,
    MarkdownBlock,
    MathBlock,
    MermaidDiagram,
    Paragraph,
    ParsedMarkdownDocument,
    SoftBreak,
    Strikethrough,
    Strong,
    Table,
    Text,
    ThematicBreak,
    content_digest,
)
from streammd.parser.grouping import ImageRow, SpecialBlock, TextGroup, group_blocks
from streammd.parser.md_parser import footnote_order

MATH_ENGINES = ("none", "katex", "mathjax")


@dataclass(slots=True)
class RenderedGroup:
    kind: str
    html: str


class HTMLRenderer:
    """Render parsed blocks into the document template."""

    def __init__(self, template_path: Path | None = None) -> None:
        if template_path is None:
            template_path = Path(__file__).resolve().parent.parent / "template" / "document.html"

        loader = FileSystemLoader(str(template_path.parent))
        self._env = Environment(loader=loader, autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self._template_name = template_path.name

    def render(
        self,
        document: ParsedMarkdownDocument,
        *,
        title: str | None = None,
        dark_mode: bool = False,
        math_engine: str = "none",
    ) -> str:
        if math_engine not in MATH_ENGINES:
            raise ValueError(f"Unknown math engine: {math_engine!r} (expected one of {', '.join(MATH_ENGINES)})")

        order = footnote_order(document)
        numbers = {footnote_id: idx + 1 for idx, footnote_id in enumerate(order)}

        groups = [
            self._render_group(group, numbers=numbers, math_engine=math_engine)
            for group in group_blocks(document.blocks)
        ]

        footnotes = []
        for footnote_id in order:
            block = document.footnotes.get(footnote_id)
            if block is None or not isinstance(block.type, FootnoteDefinition):
                continue
            body = "\n".join(
                self._render_block(child, numbers=numbers, math_engine=math_engine)
                for child in block.type.blocks
            )
            footnotes.append({"id": footnote_id, "number": numbers[footnote_id], "html": body})

        template = self._env.get_template(self._template_name)
        return template.render(
            page_title=title or _first_heading(document) or "Untitled",
            groups=[{"kind": g.kind, "html": g.html} for g in groups],
            footnotes=footnotes,
            streaming_buffer=document.streaming_buffer,
            is_complete=document.is_complete,
            dark_mode=dark_mode,
            math_engine=math_engine,
        )

    def _render_group(self, group, *, numbers: dict[str, int], math_engine: str) -> RenderedGroup:
        if isinstance(group, TextGroup):
            body = "\n".join(self._render_block(b, numbers=numbers, math_engine=math_engine) for b in group.blocks)
            return RenderedGroup(kind="text", html=body)

        if isinstance(group, ImageRow):
            parts = []
            for image in group.images:
                img = (
                    f'<img src="{html.escape(image.url)}" alt="{html.escape(image.alt or "")}" '
                    'loading="lazy" class="md-badge" />'
                )
                if image.link_url:
                    img = f'<a href="{html.escape(image.link_url)}">{img}</a>'
                parts.append(img)
            return RenderedGroup(kind="image-row", html='<div class="md-image-row">' + "".join(parts) + "</div>")

        if isinstance(group, SpecialBlock):
            return RenderedGroup(
                kind="special",
                html=self._render_block(group.block, numbers=numbers, math_engine=math_engine),
            )

        raise TypeError(f"Unsupported block group: {type(group).__name__}")

    def _render_block(self, block: MarkdownBlock, *, numbers: dict[str, int], math_engine: str) -> str:
        block_type = block.type
        block_id = html.escape(block.id)

        if isinstance(block_type, Paragraph):
            return f'<p data-block-id="{block_id}">{self._render_inline(block_type.content, numbers, math_engine)}</p>'

        if isinstance(block_type, Heading):
            level = block_type.level
            return f'<h{level} data-block-id="{block_id}">{self._render_inline(block_type.content, numbers, math_engine)}</h{level}>'

        if isinstance(block_type, CodeBlock):
            lang_attr = f' class="language-{html.escape(block_type.language)}"' if block_type.language else ""
            return f'<pre class="md-code" data-block-id="{block_id}"><code{lang_attr}>{html.escape(block_type.code)}</code></pre>'

        if isinstance(block_type, ListBlock):
            return self._render_list(
                block_type.items, block_type.ordered, block_type.start_index, numbers, math_engine, block_id
            )

        if isinstance(block_type, BlockQuote):
            inner = "\n".join(self._render_block(b, numbers=numbers, math_engine=math_engine) for b in block_type.blocks)
            return f'<blockquote data-block-id="{block_id}">{inner}</blockquote>'

        if isinstance(block_type, Table):
            return self._render_table(block_type, numbers, math_engine, block_id)

        if isinstance(block_type, ImageBlock):
            return (
                f'<figure data-block-id="{block_id}"><img src="{html.escape(block_type.url)}" '
                f'alt="{html.escape(block_type.alt or "")}" loading="lazy" class="md-image" /></figure>'
            )

        if isinstance(block_type, ThematicBreak):
            return f'<hr data-block-id="{block_id}" />'

        if isinstance(block_type, HtmlBlock):
            return f'<pre class="md-html" data-block-id="{block_id}">{html.escape(block_type.html)}</pre>'

        if isinstance(block_type, MermaidDiagram):
            return (
                f'<pre class="md-mermaid" data-block-id="{block_id}" '
                f'data-key="{content_digest(block_type.code)}">{html.escape(block_type.code)}</pre>'
            )

        if isinstance(block_type, MathBlock):
            return (
                f'<div class="md-math" data-block-id="{block_id}" data-engine="{html.escape(math_engine)}" '
                f'data-display="true" data-key="{content_digest(block_type.latex)}">'
                f"{_math_source(block_type.latex, math_engine, display=True)}</div>"
            )

        if isinstance(block_type, FootnoteReference):
            return self._render_footnote_ref(block_type.id, numbers)

        if isinstance(block_type, FootnoteDefinition):
            inner = "\n".join(self._render_block(b, numbers=numbers, math_engine=math_engine) for b in block_type.blocks)
            return f'<div class="md-footnote-def" id="fn-{html.escape(block_type.id)}">{inner}</div>'

        return ""

    def _render_inline(self, content: InlineContent, numbers: dict[str, int], math_engine: str) -> str:
        parts: list[str] = []
        for element in content.elements:
            if isinstance(element, Text):
                parts.append(html.escape(element.text))
            elif isinstance(element, Emphasis):
                parts.append(f"<em>{self._render_inline(element.content, numbers, math_engine)}</em>")
            elif isinstance(element, Strong):
                parts.append(f"<strong>{self._render_inline(element.content, numbers, math_engine)}</strong>")
            elif isinstance(element, Strikethrough):
                parts.append(f"<del>{self._render_inline(element.content, numbers, math_engine)}</del>")
            elif isinstance(element, InlineCode):
                parts.append(f"<code>{html.escape(element.code)}</code>")
            elif isinstance(element, Link):
                title = f' title="{html.escape(element.title)}"' if element.title else ""
                parts.append(
                    f'<a href="{html.escape(element.url)}"{title}>{self._render_inline(element.content, numbers, math_engine)}</a>'
                )
            elif isinstance(element, InlineImage):
                parts.append(
                    f'<img src="{html.escape(element.url)}" alt="{html.escape(element.alt or "")}" '
                    'loading="lazy" class="md-inline-image" />'
                )
            elif isinstance(element, SoftBreak):
                parts.append("\n")
            elif isinstance(element, HardBreak):
                parts.append("<br />\n")
            elif isinstance(element, InlineHtml):
                parts.append(html.escape(element.html))
            elif isinstance(element, InlineMath):
                if math_engine == "none":
                    parts.append(f'<code class="md-math-inline">{html.escape(element.latex)}</code>')
                else:
                    source = _math_source(element.latex, math_engine, display=False)
                    parts.append(f'<span class="md-math-inline" data-display="false">{source}</span>')
            elif isinstance(element, FootnoteRef):
                parts.append(self._render_footnote_ref(element.id, numbers))
        return "".join(parts)

    def _render_footnote_ref(self, footnote_id: str, numbers: dict[str, int]) -> str:
        number = numbers.get(footnote_id)
        if number is None:
            return html.escape(f"[^{footnote_id}]")
        escaped = html.escape(footnote_id)
        return (
            f'<sup class="md-fn-ref" id="fnref-{escaped}"><a href="#fn-{escaped}" '
            f'data-footnote-id="{escaped}">[{number}]</a></sup>'
        )

    def _render_list(
        self,
        items: tuple[ListItem, ...],
        ordered: bool,
        start: int,
        numbers: dict[str, int],
        math_engine: str,
        block_id: str | None = None,
    ) -> str:
        tag = "ol" if ordered else "ul"
        attrs = f' start="{start}"' if ordered and start != 1 else ""
        if block_id:
            attrs += f' data-block-id="{block_id}"'

        rendered = []
        for item in items:
            checkbox = ""
            if item.checkbox is not None:
                checked = " checked" if item.checkbox is CheckboxState.CHECKED else ""
                checkbox = f'<input type="checkbox" disabled{checked} /> '
            body = checkbox + self._render_inline(item.content, numbers, math_engine)
            if item.children:
                first = item.children[0]
                body += self._render_list(
                    item.children, first.list_ordered, first.list_start_index, numbers, math_engine
                )
            rendered.append(f"<li>{body}</li>")
        return f"<{tag}{attrs}>{''.join(rendered)}</{tag}>"

    def _render_table(self, block: Table, numbers: dict[str, int], math_engine: str, block_id: str) -> str:
        def cell_style(column: int) -> str:
            if column >= len(block.alignments) or block.alignments[column] is ColumnAlignment.NONE:
                return ""
            return f' style="text-align:{block.alignments[column].value}"'

        head_html = ""
        body_rows = []
        for row in block.rows:
            tag = "th" if row.is_header else "td"
            cells = "".join(
                f"<{tag}{cell_style(col)}>{self._render_inline(cell, numbers, math_engine)}</{tag}>"
                for col, cell in enumerate(row.cells)
            )
            if row.is_header:
                head_html = f"<thead><tr>{cells}</tr></thead>"
            else:
                body_rows.append(f"<tr>{cells}</tr>")

        body_html = "<tbody>" + "".join(body_rows) + "</tbody>" if body_rows else ""
        return f'<div class="md-table-wrap" data-block-id="{block_id}"><table class="md-table">{head_html}{body_html}</table></div>'


def _first_heading(document: ParsedMarkdownDocument) -> str | None:
    for block in document.blocks:
        if isinstance(block.type, Heading):
            return block.type.content.plain_text.strip() or None
    return None


def _math_source(latex: str, math_engine: str, *, display: bool) -> str:
    """Escaped LaTeX in the form the selected engine picks up from the page."""
    escaped = html.escape(latex)
    if math_engine == "mathjax":
        return f"\\[{escaped}\\]" if display else f"\\({escaped}\\)"
    if math_engine == "katex":
        return escaped
    return f"<code>{escaped}</code>"
