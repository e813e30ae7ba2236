"""Text chunking with overlapping windows and paragraph boundary preservation.

Turns the :class:`~docrag.models.chunks.TextSegment` list produced by the
extractors into :class:`~docrag.models.chunks.TextChunk` objects sized for
embedding models (512 tokens with 100-token overlap by default).

The chunking strategy has three goals:

1. **Paragraph-preserving** -- chunk boundaries align with paragraph breaks
   (blank lines).  A paragraph larger than the budget is split at sentence
   boundaries with an abbreviation-aware splitter; a sentence larger than
   the budget falls back to whitespace word windows.

2. **Overlapping windows** -- consecutive chunks share up to ``overlap``
   tokens of tail context so concepts spanning a boundary are captured in
   at least one chunk.

3. **Provenance** -- chunks flow across page segments, and each chunk takes
   its page number, section title and any pre-computed enrichment from the
   segment of its first *new* unit (overlap units are borrowed context).
   Segments marked ``hard_break`` (XML articles) always start a fresh chunk
   with no overlap carried into them.

The output is a pure function of the segments and the configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from docrag.models.chunks import TextChunk, TextSegment
from docrag.models.ingestion import ChunkingStats
from docrag.services.ingestion.token_counter import HeuristicTokenCounter, TokenCounter
from docrag.utils.errors import ChunkingError

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
# English and Dutch, since building regulations are a primary input.
_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "No",
        "Nr",
        "nr",
        "vs",
        "etc",
        "approx",
        "e.g",
        "i.e",
        "bijv",
        "art",
        "Art",
        "o.a",
        "m.b.t",
        "i.v.m",
        "ca",
        "incl",
        "excl",
        "min",
        "max",
        "fig",
        "Fig",
    }
)


@dataclass(frozen=True)
class _Unit:
    """Smallest piece the packer moves around."""

    text: str
    tokens: int
    segment_index: int
    # (segment_index, paragraph_index); units sharing a key join with a space.
    paragraph_key: tuple[int, int]


class TextChunker:
    """Splits extracted segments into overlapping, token-bounded chunks.

    Parameters
    ----------
    chunk_size:
        Maximum token count per chunk (default 512).
    overlap:
        Maximum tokens of tail context repeated at the start of the next
        chunk (default 100).  Must be smaller than *chunk_size*.
    token_counter:
        Counting strategy; defaults to :class:`HeuristicTokenCounter`.
    """

    def __init__(
        self,
        chunk_size: int = 512,
        overlap: int = 100,
        token_counter: TokenCounter | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ChunkingError(message=f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ChunkingError(
                message=f"overlap must be in [0, chunk_size), got {overlap} for size {chunk_size}"
            )
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._counter = token_counter or HeuristicTokenCounter()

    @property
    def token_counter(self) -> TokenCounter:
        return self._counter

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, segments: list[TextSegment]) -> list[TextChunk]:
        """Split *segments* into ordered :class:`TextChunk` objects.

        Returns
        -------
        list[TextChunk]
            Chunks with contiguous indices starting at 0.  Empty or
            whitespace-only input returns an empty list.
        """
        groups = self._pack_units(segments)

        chunks: list[TextChunk] = []
        for index, (units, first_new) in enumerate(groups):
            text = self._join_units(units)
            origin = segments[units[first_new].segment_index]
            chunks.append(
                TextChunk(
                    index=index,
                    text=text,
                    token_count=self._counter.count(text),
                    page_number=origin.page_number,
                    section_title=origin.section_title,
                    enrichment=origin.enrichment,
                )
            )

        if chunks:
            stats = chunking_stats(chunks)
            logger.debug(
                "chunking_complete",
                num_chunks=stats.total_chunks,
                total_tokens=stats.total_tokens,
                avg_tokens=stats.avg_tokens,
                tokenizer=self._counter.name,
            )
        return chunks

    def count_tokens(self, text: str) -> int:
        return self._counter.count(text)

    # ------------------------------------------------------------------
    # Unit splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        """Split *text* on blank lines, discarding blanks."""
        parts = re.split(r"\n\s*\n", text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split *text* at sentence boundaries while respecting abbreviations.

        Periods after known abbreviations are masked with ``\\x00`` (same
        length, so indices stay aligned with the original text) before
        searching for ``.``, ``!`` or ``?`` followed by whitespace.
        """
        masked = text
        for abbr in _ABBREVIATIONS:
            masked = re.sub(rf"\b{re.escape(abbr)}\.", f"{abbr}\x00", masked)

        sentences: list[str] = []
        last = 0
        for match in re.finditer(r"[.!?](?:\s|$)", masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)

        return sentences if sentences else [text]

    def _split_words(self, sentence: str) -> list[str]:
        """Split an oversized sentence into whitespace word windows within budget."""
        windows: list[str] = []
        current: list[str] = []
        current_tokens = 0
        for word in sentence.split():
            word_tokens = self._counter.count(word)
            if current and current_tokens + word_tokens > self._chunk_size:
                windows.append(" ".join(current))
                current = []
                current_tokens = 0
            current.append(word)
            current_tokens += word_tokens
        if current:
            windows.append(" ".join(current))
        return windows

    def _segment_units(self, segment: TextSegment, segment_index: int) -> list[_Unit]:
        units: list[_Unit] = []
        for para_index, paragraph in enumerate(self._split_paragraphs(segment.text)):
            key = (segment_index, para_index)
            tokens = self._counter.count(paragraph)
            if tokens <= self._chunk_size:
                units.append(_Unit(paragraph, tokens, segment_index, key))
                continue

            for sentence in self._split_sentences(paragraph):
                sent_tokens = self._counter.count(sentence)
                if sent_tokens <= self._chunk_size:
                    units.append(_Unit(sentence, sent_tokens, segment_index, key))
                    continue
                for window in self._split_words(sentence):
                    units.append(
                        _Unit(window, self._counter.count(window), segment_index, key)
                    )
        return units

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _pack_units(self, segments: list[TextSegment]) -> list[tuple[list[_Unit], int]]:
        """Greedily pack units into chunks.

        Returns ``(units, first_new_index)`` pairs, where the units before
        ``first_new_index`` are overlap carried from the previous chunk.
        """
        groups: list[tuple[list[_Unit], int]] = []
        current: list[_Unit] = []
        current_tokens = 0
        first_new = 0

        for segment_index, segment in enumerate(segments):
            units = self._segment_units(segment, segment_index)
            if not units:
                continue

            if segment.hard_break and current:
                groups.append((current, first_new))
                current, current_tokens, first_new = [], 0, 0

            for unit in units:
                if current and current_tokens + unit.tokens > self._chunk_size:
                    groups.append((current, first_new))
                    current, current_tokens = self._build_overlap(current)
                    # Drop the overlap when it would leave no room for the unit.
                    if current_tokens + unit.tokens > self._chunk_size:
                        current, current_tokens = [], 0
                    first_new = len(current)

                current.append(unit)
                current_tokens += unit.tokens

        if current:
            groups.append((current, first_new))
        return groups

    def _build_overlap(self, units: list[_Unit]) -> tuple[list[_Unit], int]:
        """Return tail units of *units* whose combined tokens <= *overlap*."""
        overlap_units: list[_Unit] = []
        overlap_tokens = 0
        for unit in reversed(units):
            if overlap_tokens + unit.tokens > self._overlap:
                break
            overlap_units.insert(0, unit)
            overlap_tokens += unit.tokens
        return overlap_units, overlap_tokens

    @staticmethod
    def _join_units(units: list[_Unit]) -> str:
        parts: list[str] = []
        previous_key: tuple[int, int] | None = None
        for unit in units:
            if previous_key is not None:
                parts.append(" " if unit.paragraph_key == previous_key else "\n\n")
            parts.append(unit.text)
            previous_key = unit.paragraph_key
        return "".join(parts)


def chunking_stats(chunks: list[TextChunk]) -> ChunkingStats:
    """Summarize the token distribution of *chunks*."""
    if not chunks:
        return ChunkingStats()
    counts = [c.token_count for c in chunks]
    total = sum(counts)
    return ChunkingStats(
        total_chunks=len(chunks),
        total_tokens=total,
        avg_tokens=round(total / len(chunks), 1),
        min_tokens=min(counts),
        max_tokens=max(counts),
    )
