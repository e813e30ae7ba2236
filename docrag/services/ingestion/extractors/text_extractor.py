"""Plain-text and markdown extraction.

Plain text is split into pages on form-feed characters (``\\f``), which is
how text exports of paginated documents mark page breaks.  Markdown is split
into sections at ATX headings so each chunk can cite the section it came from.
"""

from __future__ import annotations

import re

import structlog

from docrag.models.chunks import ExtractionResult, TextSegment
from docrag.services.ingestion.extractors.base import BaseExtractor, decode_text

logger = structlog.get_logger(logger_name=__name__)

_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)


class PlainTextExtractor(BaseExtractor):
    """Extracts ``text/plain`` files, paginated by form feeds when present."""

    mime_types = frozenset({"text/plain"})
    extensions = frozenset({".txt"})

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        warnings: list[str] = []
        text = decode_text(data, warnings)

        if "\f" not in text:
            segments = [TextSegment(text=text.strip())] if text.strip() else []
            return ExtractionResult(
                segments=segments,
                warnings=warnings,
                extraction_method="plain-text",
            )

        pages = text.split("\f")
        # A trailing form feed closes the last page rather than opening a new one.
        if pages and not pages[-1].strip():
            pages = pages[:-1]

        segments = [
            TextSegment(text=page.strip(), page_number=number)
            for number, page in enumerate(pages, start=1)
            if page.strip()
        ]
        logger.debug("text_pages_extracted", filename=filename, pages=len(pages))
        return ExtractionResult(
            segments=segments,
            warnings=warnings,
            page_count=len(pages),
            extraction_method="plain-text",
        )


class MarkdownExtractor(BaseExtractor):
    """Extracts markdown, starting a new segment at every ATX heading."""

    mime_types = frozenset({"text/markdown", "text/x-markdown"})
    extensions = frozenset({".md", ".markdown"})

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        warnings: list[str] = []
        text = decode_text(data, warnings)

        segments: list[TextSegment] = []
        headings = list(_HEADING_RE.finditer(text))

        preamble = text[: headings[0].start()] if headings else text
        if preamble.strip():
            segments.append(TextSegment(text=preamble.strip()))

        for i, match in enumerate(headings):
            end = headings[i + 1].start() if i + 1 < len(headings) else len(text)
            body = text[match.start() : end].strip()
            segments.append(TextSegment(text=body, section_title=match.group(2).strip()))

        return ExtractionResult(
            segments=segments,
            warnings=warnings,
            extraction_method="markdown",
        )
