"""Format-specific text extractors.

Each extractor converts one file format into
:class:`~docrag.models.chunks.TextSegment` objects, which the
:class:`~docrag.services.ingestion.chunker.TextChunker` splits further:

- **PlainTextExtractor** -- ``.txt``; form feeds mark page breaks
- **MarkdownExtractor**  -- ``.md``; ATX headings become section titles
- **PDFExtractor**       -- ``.pdf`` via PyMuPDF, one segment per page
- **XMLExtractor**       -- ``.xml`` regulation exports with articles and CALS tables

:class:`DocumentExtractor` routes between them.
"""

from docrag.services.ingestion.extractors.base import BaseExtractor
from docrag.services.ingestion.extractors.pdf_extractor import PDFExtractor
from docrag.services.ingestion.extractors.router import DocumentExtractor
from docrag.services.ingestion.extractors.text_extractor import (
    MarkdownExtractor,
    PlainTextExtractor,
)
from docrag.services.ingestion.extractors.xml_extractor import XMLExtractor

__all__ = [
    "BaseExtractor",
    "DocumentExtractor",
    "MarkdownExtractor",
    "PDFExtractor",
    "PlainTextExtractor",
    "XMLExtractor",
]
