"""PDF extraction using PyMuPDF (fitz).

Extracts text page by page from in-memory bytes and returns one segment per
page that has text.  Quality heuristics add warnings rather than failing:
whitespace-aligned columns suggest a table whose structure is lost, and a
near-empty text layer suggests a scanned document without OCR.
"""

from __future__ import annotations

import asyncio
import re

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from docrag.models.chunks import ExtractionResult, TextSegment
from docrag.services.ingestion.extractors.base import BaseExtractor
from docrag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Below this many characters of text overall the PDF is probably scanned.
_MIN_TEXT_CHARS = 100

# A line with at least two gaps of 3+ spaces looks like aligned columns.
_COLUMN_LINE_RE = re.compile(r"\S[ \t]{3,}\S.*?[ \t]{3,}\S")

TABLE_WARNING = "Potential table detected - column structure may be lost"
SCANNED_WARNING = "Very little text extracted - PDF may contain scanned images"


class PDFExtractor(BaseExtractor):
    """Extracts ``application/pdf`` files page by page."""

    mime_types = frozenset({"application/pdf"})
    extensions = frozenset({".pdf"})

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        # PyMuPDF is CPU-bound C code; keep it off the event loop.
        pages, unreadable, page_count = await asyncio.to_thread(
            self._read_pages, data, filename
        )

        warnings = [f"page {number} could not be read: {error}" for number, error in unreadable]
        segments: list[TextSegment] = []
        for number, text in pages:
            if not text:
                warnings.append(f"page {number} contained no extractable text")
                continue
            segments.append(TextSegment(text=text, page_number=number))

        full_text = "\n".join(text for _, text in pages)
        if any(_COLUMN_LINE_RE.search(line) for line in full_text.splitlines()):
            warnings.append(TABLE_WARNING)
        if page_count > 0 and len(full_text.strip()) < _MIN_TEXT_CHARS:
            warnings.append(SCANNED_WARNING)

        logger.info(
            "pdf_extracted",
            filename=filename,
            pages=page_count,
            text_pages=len(segments),
            warnings=len(warnings),
        )
        return ExtractionResult(
            segments=segments,
            warnings=warnings,
            page_count=page_count,
            extraction_method="pymupdf",
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _read_pages(
        data: bytes, filename: str
    ) -> tuple[list[tuple[int, str]], list[tuple[int, str]], int]:
        """Return ``(pages, unreadable, page_count)`` with 1-based page numbers.

        ``pages`` holds ``(page_number, text)`` for every page that could be
        read and ``unreadable`` holds ``(page_number, error)`` for the rest.
        Only a document where no page is readable raises.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Could not open PDF {filename}: {exc}",
                provider_name="pymupdf",
            ) from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(
                    message=f"PDF {filename} is password-protected",
                    provider_name="pymupdf",
                )
            pages: list[tuple[int, str]] = []
            unreadable: list[tuple[int, str]] = []
            for number, page in enumerate(doc, start=1):
                try:
                    pages.append((number, page.get_text("text").strip()))
                except Exception as exc:
                    logger.warning(
                        "pdf_page_unreadable", filename=filename, page=number, error=str(exc)
                    )
                    unreadable.append((number, str(exc)))

            if unreadable and not pages:
                raise ExtractionError(
                    message=f"No page of PDF {filename} could be read: {unreadable[0][1]}",
                    provider_name="pymupdf",
                )
            return pages, unreadable, doc.page_count
        finally:
            doc.close()
