"""streammd CLI entrypoint."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from streammd.parser.ast import ParserOptions
from streammd.parser.cache import ParseCache
from streammd.parser.md_parser import MarkdownParser
from streammd.renderer.html_renderer import MATH_ENGINES, HTMLRenderer
from streammd.renderer.text_renderer import render_document_text


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output path (default: stdout)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "html", "text"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option(
    "--stream",
    "chunk_size",
    type=click.IntRange(min=1),
    default=None,
    help="Replay the input in N-character increments and report each streaming parse",
)
@click.option("--title", type=str, default=None, help="Override the HTML page title")
@click.option("--dark-mode", is_flag=True, help="Enable dark mode stylesheet")
@click.option(
    "--math-engine",
    type=click.Choice(list(MATH_ENGINES), case_sensitive=False),
    default="none",
    show_default=True,
    help="Math rendering mode for HTML output",
)
@click.option("--no-tables", is_flag=True, help="Disable GFM tables")
@click.option("--no-task-lists", is_flag=True, help="Disable native task-list checkboxes")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    input_path: Path,
    output: Path | None,
    output_format: str,
    chunk_size: int | None,
    title: str | None,
    dark_mode: bool,
    math_engine: str,
    no_tables: bool,
    no_task_lists: bool,
    verbose: bool,
) -> None:
    """Parse a Markdown file into renderable blocks (JSON, HTML or plain text)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        content = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"Cannot read {input_path}: {exc}") from exc

    parser = MarkdownParser(ParserOptions(tables=not no_tables, task_lists=not no_task_lists))

    if chunk_size is not None:
        _replay_stream(content, chunk_size, ParseCache(parser))

    document = parser.parse(content)
    output_format = output_format.lower()
    if output_format == "html":
        rendered = HTMLRenderer().render(document, title=title, dark_mode=dark_mode, math_engine=math_engine.lower())
    elif output_format == "text":
        rendered = render_document_text(document.blocks) + "\n"
    else:
        rendered = json.dumps(document.to_dict(), ensure_ascii=False, indent=2) + "\n"

    if output is None:
        click.echo(rendered, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    click.echo(f"Rendered: {output}", err=True)


def _replay_stream(content: str, chunk_size: int, cache: ParseCache) -> None:
    """Feed growing prefixes through the cache, one JSON line per step."""
    for end in range(chunk_size, len(content) + chunk_size, chunk_size):
        prefix = content[:end]
        document = cache.get(prefix, is_streaming=True)
        step = {
            "chars": len(prefix),
            "stable_chars": len(prefix) - len(document.streaming_buffer),
            "buffered_chars": len(document.streaming_buffer),
            "blocks": [block.id for block in document.blocks],
        }
        click.echo(json.dumps(step, ensure_ascii=False), err=True)


if __name__ == "__main__":  # pragma: no cover
    main()
