"""Table-to-text enrichment for chunks of plain-text and PDF documents.

Tables lose their structure when a PDF is flattened to text, so a query
like "minimum room height for a dwelling" rarely matches the bare cell grid
that contained the answer.  The enricher looks for named tables
(``Table 4.162``, ``Tabel 4.162``, ``Tabelle 4.162``), parses rows that are
pipe-separated or whitespace-aligned, and appends one synthetic sentence per
row under a ``--- Table summary ---`` marker.  The appended text is what
gets embedded; the original text is kept in the chunk metadata.

Chunks whose format already described its structure (XML articles) pass
through untouched.  Enrichment never fails a file: an exception on one chunk
is logged and that chunk keeps its original text.
"""

from __future__ import annotations

import re

import structlog

from docrag.models.chunks import EnrichedChunk, PlainChunk, TableEnrichment, TextChunk
from docrag.services.ingestion.tables import ParsedTable, generic_sentence, row_sentences

logger = structlog.get_logger(logger_name=__name__)

_TABLE_HEADER_RE = re.compile(r"\b(?:Table|Tabel|Tabelle)\s+\d+(?:\.\d+)+", re.IGNORECASE)
_ARTICLE_RE = re.compile(r"\b(?:Article|Artikel)\s+(\d+(?:\.\d+)+)", re.IGNORECASE)
_SEPARATOR_ROW_RE = re.compile(r"^[\s|:+=-]+$")
_ALIGNED_SPLIT_RE = re.compile(r"\t+|\s{2,}")

# A detected table never extends past this many characters.
_MAX_TABLE_CHARS = 3000

SUMMARY_MARKER = "--- Table summary ---"


class ChunkEnricher:
    """Adds synthetic table sentences and article numbers to chunks."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enrich(self, chunk: TextChunk) -> EnrichedChunk:
        """Enrich a single chunk.  May raise; :meth:`enrich_all` isolates failures."""
        text = chunk.text
        articles = self.extract_article_numbers(text)
        tables = self.detect_tables(text)

        if not tables:
            return EnrichedChunk(
                chunk=chunk,
                enriched_text=text,
                original_text=text,
                enrichment=PlainChunk(article_numbers=articles),
            )

        sentences: list[str] = []
        for table in tables:
            sentences.extend(row_sentences(table) or [generic_sentence(table.name)])

        enriched_text = "\n".join([text, "", SUMMARY_MARKER, *sentences])
        return EnrichedChunk(
            chunk=chunk,
            enriched_text=enriched_text,
            original_text=text,
            enrichment=TableEnrichment(
                table_name=tables[0].name,
                synthetic_sentences=sentences,
                article_numbers=articles,
            ),
        )

    def enrich_all(
        self,
        chunks: list[TextChunk],
        pre_enriched: bool = False,
        file_id: str | None = None,
    ) -> list[EnrichedChunk]:
        """Enrich every chunk, in order, without ever raising.

        Parameters
        ----------
        chunks:
            Chunks from the chunker.
        pre_enriched:
            True when the extractor already attached structure; chunks that
            carry an enrichment are then passed through unchanged.
        file_id:
            Logged with any per-chunk failure.
        """
        results: list[EnrichedChunk] = []
        fallbacks = 0
        for chunk in chunks:
            if pre_enriched and chunk.enrichment is not None:
                results.append(
                    EnrichedChunk(
                        chunk=chunk,
                        enriched_text=chunk.text,
                        original_text=chunk.text,
                        enrichment=chunk.enrichment,
                    )
                )
                continue

            try:
                results.append(self.enrich(chunk))
            except Exception as exc:
                fallbacks += 1
                logger.warning(
                    "chunk_enrichment_failed",
                    file_id=file_id,
                    chunk_index=chunk.index,
                    error=str(exc),
                    msg="Keeping original text.",
                )
                results.append(
                    EnrichedChunk(
                        chunk=chunk,
                        enriched_text=chunk.text,
                        original_text=chunk.text,
                        enrichment=PlainChunk(fallback_reason=str(exc) or type(exc).__name__),
                    )
                )

        logger.debug(
            "enrichment_complete",
            file_id=file_id,
            chunks=len(results),
            tables=sum(1 for r in results if r.enrichment.has_table),
            fallbacks=fallbacks,
        )
        return results

    # ------------------------------------------------------------------
    # Heuristics
    # ------------------------------------------------------------------

    @staticmethod
    def extract_article_numbers(text: str) -> list[str]:
        """Return unique article numbers (``"4.162"``) in order of appearance."""
        numbers: list[str] = []
        for number in _ARTICLE_RE.findall(text):
            if number not in numbers:
                numbers.append(number)
        return numbers

    def detect_tables(self, text: str) -> list[ParsedTable]:
        """Find named tables and parse the rows that follow each header.

        A table runs from its header to the next table header, a blank line
        followed by an article heading, or ``_MAX_TABLE_CHARS``, whichever
        comes first.
        """
        headers = list(_TABLE_HEADER_RE.finditer(text))
        tables: list[ParsedTable] = []
        for i, match in enumerate(headers):
            end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
            end = min(end, match.start() + _MAX_TABLE_CHARS)
            region = text[match.end() : end]
            article_break = re.search(r"\n\s*\n\s*(?:Article|Artikel)\b", region, re.IGNORECASE)
            if article_break:
                region = region[: article_break.start()]

            name = _normalize_name(match.group(0))
            rows = self._parse_rows(region)
            if len(rows) >= 2:
                tables.append(ParsedTable(title=name, columns=rows[0], rows=rows[1:]))
            else:
                tables.append(ParsedTable(title=name))
        return tables

    @staticmethod
    def _parse_rows(region: str) -> list[list[str]]:
        rows: list[list[str]] = []
        # The rest of the header line is the table caption, not a row.
        lines = region.split("\n")[1:]
        for line in lines:
            stripped = line.strip()
            if not stripped or _SEPARATOR_ROW_RE.match(stripped):
                continue
            if "|" in stripped:
                cells = [c.strip() for c in stripped.strip("|").split("|")]
            else:
                cells = [c.strip() for c in _ALIGNED_SPLIT_RE.split(stripped)]
            if len([c for c in cells if c]) >= 2:
                rows.append(cells)
        return rows


def _normalize_name(raw: str) -> str:
    """Collapse inner whitespace and capitalize: ``"tabel  4.162"`` -> ``"Tabel 4.162"``."""
    word, number = raw.split(None, 1)
    return f"{word.capitalize()} {number.strip()}"
