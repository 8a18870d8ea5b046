"""Batch parsed blocks for rendering: text runs, badge rows and special blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .base import (
    BlockQuote,
    FootnoteDefinition,
    FootnoteReference,
    HardBreak,
    Heading,
    ImageBlock,
    InlineContent,
    InlineElement,
    InlineImage,
    Link,
    ListBlock,
    MarkdownBlock,
    Paragraph,
    SoftBreak,
    Text,
    ThematicBreak,
)


@dataclass(frozen=True, slots=True)
class RowImage:
    url: str
    alt: str | None = None
    link_url: str | None = None


@dataclass(frozen=True, slots=True)
class TextGroup:
    blocks: tuple[MarkdownBlock, ...]


@dataclass(frozen=True, slots=True)
class ImageRow:
    images: tuple[RowImage, ...]


@dataclass(frozen=True, slots=True)
class SpecialBlock:
    block: MarkdownBlock


BlockGroup = TextGroup | ImageRow | SpecialBlock


def _significant(elements: Iterable[InlineElement]) -> list[InlineElement]:
    """Drop whitespace-only text and line breaks."""
    result: list[InlineElement] = []
    for element in elements:
        if isinstance(element, (SoftBreak, HardBreak)):
            continue
        if isinstance(element, Text) and not element.text.strip():
            continue
        result.append(element)
    return result


def _images_from_content(content: InlineContent) -> list[RowImage]:
    images: list[RowImage] = []
    for element in _significant(content.elements):
        if isinstance(element, InlineImage):
            images.append(RowImage(element.url, element.alt))
            continue
        if isinstance(element, Link):
            inner = _significant(element.content.elements)
            if len(inner) == 1 and isinstance(inner[0], InlineImage):
                images.append(RowImage(inner[0].url, inner[0].alt, link_url=element.url))
                continue
        return []
    return images


def extract_images(block: MarkdownBlock) -> list[RowImage]:
    """Images of an image-only block; empty if the block has any other content."""
    block_type = block.type
    if isinstance(block_type, ImageBlock):
        return [RowImage(block_type.url, block_type.alt)]
    if isinstance(block_type, Paragraph):
        return _images_from_content(block_type.content)
    return []


def is_text_block(block: MarkdownBlock) -> bool:
    block_type = block.type
    if isinstance(block_type, Paragraph):
        return not block_type.content.contains_images
    return isinstance(
        block_type,
        (Heading, BlockQuote, ListBlock, ThematicBreak, FootnoteReference, FootnoteDefinition),
    )


def group_blocks(blocks: Iterable[MarkdownBlock]) -> list[BlockGroup]:
    groups: list[BlockGroup] = []
    text_run: list[MarkdownBlock] = []
    image_row: list[RowImage] = []

    def flush_text() -> None:
        if text_run:
            groups.append(TextGroup(tuple(text_run)))
            text_run.clear()

    def flush_images() -> None:
        if image_row:
            groups.append(ImageRow(tuple(image_row)))
            image_row.clear()

    for block in blocks:
        images = extract_images(block)
        if images:
            flush_text()
            image_row.extend(images)
            continue

        flush_images()
        if is_text_block(block):
            text_run.append(block)
        else:
            flush_text()
            groups.append(SpecialBlock(block))

    flush_images()
    flush_text()
    return groups
