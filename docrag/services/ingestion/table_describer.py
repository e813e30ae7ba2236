"""LLM-powered synthetic sentences for structured tables.

Asks an :class:`~docrag.interfaces.llm_provider.ILLMProvider` to turn every
data row of a table into a complete, self-contained sentence.  The LLM is
better than fixed templates at naming what a column *means* (a minimum
height, a floor area) rather than just echoing the header.

LLM failures never block extraction: the describer falls back to the
deterministic row sentences from :mod:`docrag.services.ingestion.tables`.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

import structlog

from docrag.services.ingestion.tables import ParsedTable, generic_sentence, row_sentences
from docrag.utils.errors import DocragError

if TYPE_CHECKING:
    from docrag.interfaces.llm_provider import ILLMProvider

logger = structlog.get_logger(logger_name=__name__)

_SYSTEM_PROMPT = (
    "You are an expert at reading tables from building regulations and "
    "technical specifications. You convert each table row into a natural, "
    "searchable sentence in the language of the table."
)

_USER_PROMPT = """\
Convert every data row (not the header) of the table below into ONE complete sentence.
Each sentence must explicitly mention:
- the category or function the row is about
- the table name ({table_name})
- every value together with its unit and what it measures

Return one sentence per line, without numbering or bullets.

TABLE:
{markdown}"""

_LIST_MARKER_RE = re.compile(r"^(?:\d+[.)]|[-*•])\s*")


class TableDescriber:
    """Generates synthetic sentences for a :class:`ParsedTable`.

    Parameters
    ----------
    llm:
        Optional LLM provider.  ``None`` means deterministic sentences only.
    pause_s:
        Pause after each LLM call, to stay under provider rate limits when a
        document holds many tables.
    """

    def __init__(self, llm: ILLMProvider | None = None, pause_s: float = 0.1) -> None:
        self._llm = llm
        self._pause_s = pause_s

    @property
    def uses_llm(self) -> bool:
        return self._llm is not None

    async def describe(self, table: ParsedTable) -> tuple[list[str], bool]:
        """Return ``(sentences, produced_by_llm)`` for *table*."""
        if self._llm is not None and table.rows:
            try:
                response = await self._llm.complete(
                    system_prompt=_SYSTEM_PROMPT,
                    user_prompt=_USER_PROMPT.format(
                        table_name=table.name,
                        markdown=table.to_markdown(),
                    ),
                    temperature=0.1,
                    max_tokens=1500,
                )
                sentences = self._parse_response(response)
                if sentences:
                    return sentences, True
                logger.warning("table_description_empty", table=table.name)
            except DocragError as exc:
                logger.warning(
                    "table_description_failed",
                    table=table.name,
                    error=str(exc),
                    msg="Falling back to row sentences.",
                )
            finally:
                if self._pause_s:
                    await asyncio.sleep(self._pause_s)

        return self.fallback_sentences(table), False

    @staticmethod
    def fallback_sentences(table: ParsedTable) -> list[str]:
        return row_sentences(table) or [generic_sentence(table.name)]

    @staticmethod
    def _parse_response(response: str) -> list[str]:
        """Split an LLM response into sentences, dropping headings and list markers."""
        sentences: list[str] = []
        for line in response.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or line.startswith("|"):
                continue
            line = _LIST_MARKER_RE.sub("", line).strip()
            if len(line) > 10:
                sentences.append(line)
        return sentences
