"""Structured extraction for XML legal and regulatory documents.

Regulation exports (e.g. Dutch building codes) mark up their structure
explicitly, so instead of guessing at tables from plain text this extractor
reads it straight from the element tree:

- every ``artikel``/``article`` element becomes one segment that starts a
  fresh chunk (``hard_break``); its number comes from the first ``nr``
  descendant and its title from the first ``titel``/``title``
- CALS tables (``table/title/tgroup/thead|tbody/row/entry``) inside an
  article are rendered as markdown and described by synthetic sentences
  from :class:`~docrag.services.ingestion.table_describer.TableDescriber`
- dotted numbers mentioned in the article (``4.163``) are recorded as
  cross-references

The structure is attached to each segment as an
:class:`~docrag.models.chunks.XmlArticleEnrichment`, so the downstream
enricher passes these chunks through untouched.  Documents without article
elements fall back to a single plain segment of all text.
"""

from __future__ import annotations

import asyncio
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from dataclasses import dataclass, field

import structlog

from docrag.models.chunks import ExtractionResult, TextSegment, XmlArticleEnrichment
from docrag.services.ingestion.extractors.base import BaseExtractor
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.services.ingestion.tables import ParsedTable
from docrag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_ARTICLE_TAGS = frozenset({"artikel", "article"})
_TITLE_TAGS = frozenset({"titel", "title"})
_REFERENCE_RE = re.compile(r"\b\d+\.\d+\b")
_WHITESPACE_RE = re.compile(r"\s+")

TABLE_DETAILS_MARKER = "--- Table details ---"
TABLE_SUMMARY_MARKER = "--- Table summary ---"


@dataclass
class _Article:
    tag: str
    number: str
    title: str
    blocks: list[str]
    tables: list[ParsedTable] = field(default_factory=list)
    references: list[str] = field(default_factory=list)


def _local(tag: object) -> str:
    """Lower-cased tag name without namespace; '' for comments and PIs."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _text_without_tables(elem: ET.Element) -> str:
    parts = [elem.text or ""]
    for child in elem:
        if _local(child.tag) != "table":
            parts.append(_text_without_tables(child))
        parts.append(child.tail or "")
    return " ".join(parts)


def _iter_without_tables(elem: ET.Element) -> Iterator[ET.Element]:
    for child in elem:
        if _local(child.tag) == "table":
            continue
        yield child
        yield from _iter_without_tables(child)


class XMLExtractor(BaseExtractor):
    """Extracts article-structured XML with tables described as sentences."""

    mime_types = frozenset({"application/xml", "text/xml"})
    extensions = frozenset({".xml"})

    def __init__(self, table_describer: TableDescriber | None = None) -> None:
        self._describer = table_describer or TableDescriber()

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        root = await asyncio.to_thread(self._parse, data, filename)

        articles = [self._read_article(a) for a in self._find_articles(root)]
        if not articles:
            text = _collapse(" ".join(root.itertext()))
            logger.info("xml_no_articles", filename=filename, chars=len(text))
            return ExtractionResult(
                segments=[TextSegment(text=text)] if text else [],
                extraction_method="xml",
            )

        warnings: list[str] = []
        segments: list[TextSegment] = []
        table_count = 0
        for article in articles:
            segment, fallback_tables = await self._article_segment(article)
            table_count += len(article.tables)
            if fallback_tables:
                warnings.append(
                    f"article {article.number or '?'}: {fallback_tables} table(s) "
                    "described without LLM"
                )
            if segment is not None:
                segments.append(segment)

        logger.info(
            "xml_extracted",
            filename=filename,
            articles=len(articles),
            tables=table_count,
            segments=len(segments),
        )
        return ExtractionResult(
            segments=segments,
            warnings=warnings,
            extraction_method="xml",
            pre_enriched=True,
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(data: bytes, filename: str) -> ET.Element:
        try:
            return ET.fromstring(data)
        except ET.ParseError as exc:
            raise ExtractionError(
                message=f"Malformed XML in {filename}: {exc}",
                provider_name="xml",
            ) from exc

    def _find_articles(self, elem: ET.Element) -> Iterator[ET.Element]:
        """Yield outermost article elements in document order."""
        if _local(elem.tag) in _ARTICLE_TAGS:
            yield elem
            return
        for child in elem:
            yield from self._find_articles(child)

    def _read_article(self, elem: ET.Element) -> _Article:
        number = ""
        title = ""
        for node in _iter_without_tables(elem):
            name = _local(node.tag)
            if not number and name == "nr":
                number = _collapse("".join(node.itertext()))
            elif not title and name in _TITLE_TAGS:
                title = _collapse("".join(node.itertext()))
            if number and title:
                break

        blocks: list[str] = []
        if elem.text and elem.text.strip():
            blocks.append(_collapse(elem.text))
        for child in elem:
            if _local(child.tag) != "table":
                block = _collapse(_text_without_tables(child))
                if block:
                    blocks.append(block)
            if child.tail and child.tail.strip():
                blocks.append(_collapse(child.tail))

        tables = [
            self._read_table(node) for node in elem.iter() if _local(node.tag) == "table"
        ]

        mentioned = " ".join(blocks) + " " + " ".join(
            cell for table in tables for row in table.rows for cell in row
        )
        references: list[str] = []
        for ref in _REFERENCE_RE.findall(mentioned):
            if ref != number and ref not in references:
                references.append(ref)

        return _Article(
            tag=_local(elem.tag),
            number=number,
            title=title,
            blocks=blocks,
            tables=tables,
            references=references,
        )

    @staticmethod
    def _read_table(elem: ET.Element) -> ParsedTable:
        title = ""
        for child in elem:
            if _local(child.tag) in _TITLE_TAGS:
                title = _collapse("".join(child.itertext()))
                break

        def cells(row: ET.Element) -> list[str]:
            return [
                _collapse("".join(entry.itertext()))
                for entry in row
                if _local(entry.tag) == "entry"
            ]

        header_rows: list[list[str]] = []
        body_rows: list[list[str]] = []
        for node in elem.iter():
            name = _local(node.tag)
            if name == "thead":
                header_rows.extend(cells(r) for r in node.iter() if _local(r.tag) == "row")
            elif name == "tbody":
                body_rows.extend(cells(r) for r in node.iter() if _local(r.tag) == "row")

        if not header_rows and not body_rows:
            body_rows = [cells(r) for r in elem.iter() if _local(r.tag) == "row"]

        return ParsedTable(
            title=title,
            # The last header row carries the column names in multi-row headers.
            columns=header_rows[-1] if header_rows else [],
            rows=[row for row in body_rows if any(row)],
        )

    # ------------------------------------------------------------------
    # Segment building
    # ------------------------------------------------------------------

    async def _article_segment(self, article: _Article) -> tuple[TextSegment | None, int]:
        """Build the article's segment; also return how many tables fell back."""
        parts = ["\n\n".join(article.blocks)] if article.blocks else []
        sentences: list[str] = []
        by_llm = False
        fallback_tables = 0

        for table in article.tables:
            table_sentences, described_by_llm = await self._describer.describe(table)
            sentences.extend(table_sentences)
            by_llm = by_llm or described_by_llm
            if self._describer.uses_llm and not described_by_llm:
                fallback_tables += 1
            parts.append(f"{TABLE_DETAILS_MARKER}\n{table.name}\n{table.to_markdown()}")

        if sentences:
            parts.append(TABLE_SUMMARY_MARKER + "\n" + "\n".join(sentences))

        text = "\n\n".join(p for p in parts if p.strip())
        if not text:
            return None, fallback_tables

        label = "Artikel" if article.tag == "artikel" else "Article"
        heading = f"{label} {article.number}".strip() if article.number else ""
        section_title = " ".join(p for p in (heading, article.title) if p) or None

        enrichment = XmlArticleEnrichment(
            article_number=article.number,
            article_title=article.title,
            table_name=article.tables[0].name if article.tables else None,
            synthetic_sentences=sentences,
            article_references=article.references,
            enriched_by_llm=by_llm,
        )
        return (
            TextSegment(
                text=text,
                section_title=section_title,
                hard_break=True,
                enrichment=enrichment,
            ),
            fallback_tables,
        )
