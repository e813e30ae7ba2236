"""Unit tests for the format extractors and the DocumentExtractor router."""

from __future__ import annotations

import fitz
import pytest

from docrag.models.chunks import XmlArticleEnrichment
from docrag.services.ingestion.extractors import (
    DocumentExtractor,
    MarkdownExtractor,
    PDFExtractor,
    PlainTextExtractor,
    XMLExtractor,
)
from docrag.services.ingestion.extractors.pdf_extractor import SCANNED_WARNING
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.utils.errors import ExtractionError, LLMError, UnsupportedFormatError
from tests.conftest import FakeLLMProvider

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_pdf(pages: list[str], **save_options) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes(**save_options)
    doc.close()
    return data


_LONG_PAGE = "\n".join(
    f"Line {i}: the ventilation capacity of a habitable room is specified here."
    for i in range(5)
)

_REGULATION_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<regeling>
  <hoofdstuk>
    <artikel>
      <nr>4.162</nr>
      <titel>Hoogte verblijfsgebied</titel>
      <lid>Een verblijfsgebied heeft een hoogte volgens artikel 4.163.</lid>
      <table>
        <title>Tabel 4.162</title>
        <tgroup cols="2">
          <thead><row><entry>Gebruiksfunctie</entry><entry>Hoogte</entry></row></thead>
          <tbody>
            <row><entry>woonfunctie</entry><entry>2,6 m</entry></row>
            <row><entry>kantoorfunctie</entry><entry>2,4 m</entry></row>
          </tbody>
        </tgroup>
      </table>
    </artikel>
    <artikel>
      <nr>4.163</nr>
      <titel>Uitzondering</titel>
      <lid>Dit artikel verwijst naar artikel 4.162.</lid>
    </artikel>
  </hoofdstuk>
</regeling>
"""


# ---------------------------------------------------------------------------
# Plain text and markdown
# ---------------------------------------------------------------------------


class TestPlainTextExtractor:
    async def test_single_segment_without_form_feeds(self) -> None:
        result = await PlainTextExtractor().extract(b"Hello world.\n\nSecond paragraph.", "a.txt")

        assert len(result.segments) == 1
        assert result.segments[0].page_number is None
        assert result.extraction_method == "plain-text"
        assert result.warnings == []

    async def test_form_feeds_split_pages(self) -> None:
        result = await PlainTextExtractor().extract(b"page one\fpage two\f\fpage four\f", "a.txt")

        assert [s.page_number for s in result.segments] == [1, 2, 4]
        assert [s.text for s in result.segments] == ["page one", "page two", "page four"]
        assert result.page_count == 4

    async def test_invalid_utf8_is_replaced_with_warning(self) -> None:
        result = await PlainTextExtractor().extract(b"caf\xe9 au lait", "a.txt")

        assert "�" in result.segments[0].text
        assert len(result.warnings) == 1

    async def test_empty_file_yields_no_segments(self) -> None:
        result = await PlainTextExtractor().extract(b"   \n", "empty.txt")

        assert result.segments == []


class TestMarkdownExtractor:
    async def test_headings_start_sections(self) -> None:
        data = b"Preamble text.\n\n# Scope\nScope body.\n\n## Heights ##\nHeight body.\n"

        result = await MarkdownExtractor().extract(data, "doc.md")

        assert [s.section_title for s in result.segments] == [None, "Scope", "Heights"]
        assert result.segments[1].text == "# Scope\nScope body."
        assert result.extraction_method == "markdown"


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


class TestPDFExtractor:
    async def test_one_segment_per_page(self) -> None:
        data = _make_pdf([_LONG_PAGE, "Second page text about daylight."])

        result = await PDFExtractor().extract(data, "report.pdf")

        assert [s.page_number for s in result.segments] == [1, 2]
        assert "ventilation capacity" in result.segments[0].text
        assert result.page_count == 2
        assert result.extraction_method == "pymupdf"

    async def test_blank_page_adds_warning(self) -> None:
        data = _make_pdf([_LONG_PAGE, ""])

        result = await PDFExtractor().extract(data, "report.pdf")

        assert [s.page_number for s in result.segments] == [1]
        assert "page 2 contained no extractable text" in result.warnings

    async def test_unreadable_page_is_skipped_with_warning(self, monkeypatch) -> None:
        data = _make_pdf([_LONG_PAGE, _LONG_PAGE, "Third page text about daylight."])
        original_get_text = fitz.Page.get_text

        def get_text(page, *args, **kwargs):
            if page.number == 1:
                raise RuntimeError("damaged content stream")
            return original_get_text(page, *args, **kwargs)

        monkeypatch.setattr(fitz.Page, "get_text", get_text)

        result = await PDFExtractor().extract(data, "report.pdf")

        assert [s.page_number for s in result.segments] == [1, 3]
        assert "page 2 could not be read: damaged content stream" in result.warnings
        assert result.page_count == 3

    async def test_all_pages_unreadable_raises(self, monkeypatch) -> None:
        data = _make_pdf([_LONG_PAGE, _LONG_PAGE])

        def get_text(page, *args, **kwargs):
            raise RuntimeError("damaged content stream")

        monkeypatch.setattr(fitz.Page, "get_text", get_text)

        with pytest.raises(ExtractionError, match="No page of PDF report.pdf could be read"):
            await PDFExtractor().extract(data, "report.pdf")

    async def test_little_text_adds_scanned_warning(self) -> None:
        result = await PDFExtractor().extract(_make_pdf(["Tiny."]), "scan.pdf")

        assert SCANNED_WARNING in result.warnings

    async def test_encrypted_pdf_raises(self) -> None:
        data = _make_pdf(
            [_LONG_PAGE],
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner-secret",
            user_pw="user-secret",
        )

        with pytest.raises(ExtractionError, match="password"):
            await PDFExtractor().extract(data, "locked.pdf")

    async def test_corrupt_pdf_raises(self) -> None:
        with pytest.raises(ExtractionError):
            await PDFExtractor().extract(b"this is not a pdf at all", "broken.pdf")


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


class TestXMLExtractor:
    async def test_articles_become_hard_break_segments(self) -> None:
        result = await XMLExtractor().extract(_REGULATION_XML, "bouwbesluit.xml")

        assert result.pre_enriched is True
        assert result.extraction_method == "xml"
        assert len(result.segments) == 2
        assert all(s.hard_break for s in result.segments)
        assert result.segments[0].section_title == "Artikel 4.162 Hoogte verblijfsgebied"

    async def test_article_enrichment_and_table_sentences(self) -> None:
        result = await XMLExtractor().extract(_REGULATION_XML, "bouwbesluit.xml")

        first = result.segments[0]
        enrichment = first.enrichment
        assert isinstance(enrichment, XmlArticleEnrichment)
        assert enrichment.article_number == "4.162"
        assert enrichment.table_name == "Tabel 4.162"
        assert enrichment.article_references == ["4.163"]
        assert enrichment.enriched_by_llm is False
        assert enrichment.synthetic_sentences == [
            "According to Tabel 4.162, Gebruiksfunctie: woonfunctie, Hoogte: 2,6 m.",
            "According to Tabel 4.162, Gebruiksfunctie: kantoorfunctie, Hoogte: 2,4 m.",
        ]
        assert "| Gebruiksfunctie | Hoogte |" in first.text
        assert "--- Table summary ---" in first.text

    async def test_article_without_table(self) -> None:
        result = await XMLExtractor().extract(_REGULATION_XML, "bouwbesluit.xml")

        second = result.segments[1].enrichment
        assert isinstance(second, XmlArticleEnrichment)
        assert second.table_name is None
        assert second.has_table is False
        assert second.article_references == ["4.162"]

    async def test_llm_descriptions_are_used_when_configured(self) -> None:
        llm = FakeLLMProvider(
            [
                "- The required height for a woonfunctie is 2,6 m.\n"
                "- The required height for a kantoorfunctie is 2,4 m."
            ]
        )
        extractor = XMLExtractor(TableDescriber(llm=llm, pause_s=0))

        result = await extractor.extract(_REGULATION_XML, "bouwbesluit.xml")

        enrichment = result.segments[0].enrichment
        assert enrichment.enriched_by_llm is True
        assert enrichment.synthetic_sentences[0] == "The required height for a woonfunctie is 2,6 m."
        assert result.warnings == []

    async def test_llm_failure_falls_back_with_warning(self) -> None:
        llm = FakeLLMProvider([LLMError(message="model overloaded")])
        extractor = XMLExtractor(TableDescriber(llm=llm, pause_s=0))

        result = await extractor.extract(_REGULATION_XML, "bouwbesluit.xml")

        assert result.segments[0].enrichment.enriched_by_llm is False
        assert result.warnings == ["article 4.162: 1 table(s) described without LLM"]

    async def test_document_without_articles_is_one_segment(self) -> None:
        result = await XMLExtractor().extract(b"<doc><p>Hello</p>\n<p>World</p></doc>", "plain.xml")

        assert [s.text for s in result.segments] == ["Hello World"]
        assert result.pre_enriched is False

    async def test_malformed_xml_raises(self) -> None:
        with pytest.raises(ExtractionError, match="Malformed XML"):
            await XMLExtractor().extract(b"<a><b></a>", "broken.xml")


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class TestDocumentExtractor:
    async def test_mime_type_wins_over_extension(self) -> None:
        result = await DocumentExtractor().extract(b"plain words", "misnamed.pdf", "text/plain")

        assert result.extraction_method == "plain-text"

    async def test_extension_fallback_for_generic_mime(self) -> None:
        result = await DocumentExtractor().extract(
            b"# Title\nBody", "notes.md", "application/octet-stream"
        )

        assert result.extraction_method == "markdown"

    async def test_mime_parameters_are_ignored(self) -> None:
        result = await DocumentExtractor().extract(b"plain", "blob", "text/plain; charset=utf-8")

        assert result.extraction_method == "plain-text"

    async def test_total_tokens_are_counted(self) -> None:
        result = await DocumentExtractor().extract(b"one two three.", "a.txt")

        assert result.total_tokens == 4

    async def test_unsupported_format_raises(self) -> None:
        extractor = DocumentExtractor()

        assert extractor.supports("text/csv", "data.csv") is False
        with pytest.raises(UnsupportedFormatError):
            await extractor.extract(b"a,b\n1,2", "data.csv", "text/csv")
