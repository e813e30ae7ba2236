"""Routes raw file bytes to the extractor for their format."""

from __future__ import annotations

import structlog

from docrag.models.chunks import ExtractionResult
from docrag.services.ingestion.extractors.base import BaseExtractor
from docrag.services.ingestion.extractors.pdf_extractor import PDFExtractor
from docrag.services.ingestion.extractors.text_extractor import (
    MarkdownExtractor,
    PlainTextExtractor,
)
from docrag.services.ingestion.extractors.xml_extractor import XMLExtractor
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.services.ingestion.token_counter import HeuristicTokenCounter, TokenCounter
from docrag.utils.errors import UnsupportedFormatError

logger = structlog.get_logger(logger_name=__name__)


class DocumentExtractor:
    """Picks an extractor by MIME type, falling back to the filename extension.

    The declared MIME type is tried against every extractor first; only if
    none claims it is the extension consulted.  This keeps a ``.txt`` upload
    declared as ``text/markdown`` on the markdown path.

    Parameters
    ----------
    token_counter:
        Used to fill in ``ExtractionResult.total_tokens``.
    table_describer:
        Passed to the XML extractor for table sentences.
    extractors:
        Override the extractor list (mainly for tests).
    """

    def __init__(
        self,
        token_counter: TokenCounter | None = None,
        table_describer: TableDescriber | None = None,
        extractors: list[BaseExtractor] | None = None,
    ) -> None:
        self._counter = token_counter or HeuristicTokenCounter()
        self._extractors = extractors or [
            PlainTextExtractor(),
            MarkdownExtractor(),
            PDFExtractor(),
            XMLExtractor(table_describer),
        ]

    def supports(self, mime_type: str, filename: str) -> bool:
        return self._select(mime_type, filename) is not None

    async def extract(self, data: bytes, filename: str, mime_type: str = "") -> ExtractionResult:
        """Extract text segments from *data*.

        Raises
        ------
        UnsupportedFormatError
            If no extractor handles the MIME type or extension.
        docrag.utils.errors.ExtractionError
            If the selected extractor cannot read the content.
        """
        extractor = self._select(mime_type, filename)
        if extractor is None:
            raise UnsupportedFormatError(
                message=f"Unsupported file type: {mime_type or 'unknown'} ({filename})"
            )

        result = await extractor.extract(data, filename)
        total_tokens = sum(self._counter.count(s.text) for s in result.segments)

        logger.debug(
            "extraction_complete",
            filename=filename,
            method=result.extraction_method,
            segments=len(result.segments),
            tokens=total_tokens,
        )
        return result.model_copy(update={"total_tokens": total_tokens})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select(self, mime_type: str, filename: str) -> BaseExtractor | None:
        if mime_type:
            for extractor in self._extractors:
                if extractor.accepts(mime_type, ""):
                    return extractor
        for extractor in self._extractors:
            if extractor.accepts("", filename):
                return extractor
        return None
