"""Caller-owned memo for repeated parses of identical input."""

from __future__ import annotations

import logging

from .base import ParsedMarkdownDocument
from .md_parser import MarkdownParser

logger = logging.getLogger(__name__)


class ParseCache:
    """Remember the last ``(content, is_streaming)`` parse.

    UI render loops tend to ask for the same document many times between
    stream updates; only a changed key triggers a new parse. One instance
    belongs to one consumer and is not shared across threads.
    """

    def __init__(self, parser: MarkdownParser | None = None) -> None:
        self.parser = parser or MarkdownParser()
        self.hits = 0
        self.misses = 0
        self._key: tuple[str, bool] | None = None
        self._document: ParsedMarkdownDocument | None = None

    def get(self, content: str, is_streaming: bool = False) -> ParsedMarkdownDocument:
        key = (content, is_streaming)
        if self._document is not None and self._key == key:
            self.hits += 1
            return self._document

        self.misses += 1
        if is_streaming:
            document = self.parser.parse_streaming(content)
        else:
            document = self.parser.parse(content)
        logger.debug(
            "Parsed %d chars (streaming=%s): %d blocks, %d buffered",
            len(content),
            is_streaming,
            len(document.blocks),
            len(document.streaming_buffer),
        )
        self._key = key
        self._document = document
        return document

    def invalidate(self) -> None:
        self._key = None
        self._document = None
