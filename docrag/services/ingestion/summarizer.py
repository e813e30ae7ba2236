"""LLM-generated document summaries.

After a file has been embedded, a short document-level description
(summary, topics, document type, key concepts, language) helps a query
router decide whether a question concerns this document at all.  Instead
of sending the whole document, a handful of chunks from the beginning,
middle and end are sampled.

Generation never raises: an LLM or parse failure yields a minimal
``fallback`` summary so the caller can still record that analysis ran.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from docrag.models.files import DocumentSummary
from docrag.utils.errors import DocragError

if TYPE_CHECKING:
    from docrag.interfaces.llm_provider import ILLMProvider

logger = structlog.get_logger(logger_name=__name__)

_MAX_SAMPLE_CHARS = 8000

_SYSTEM_PROMPT = (
    "You generate metadata for documents in a project archive. "
    "Analyse the content samples and answer with JSON only."
)

_USER_PROMPT = """\
Generate metadata for this document.

FILENAME: {filename}

Return JSON with exactly these keys:
{{"summary": "1-2 sentence summary of what the document covers",
 "topics": ["up to 5 main topics"],
 "document_type": "specific document type, e.g. building regulation, parking standard, technical report",
 "key_concepts": ["important terms, standards, article numbers"],
 "language": "ISO 639-1 code of the main language"}}

CONTENT SAMPLES:
{samples}"""


class DocumentSummarizer:
    """Summarizes a document from a sample of its chunk texts.

    Parameters
    ----------
    llm:
        The LLM provider used for the summary prompt.
    max_samples:
        Maximum number of chunks sent to the LLM (default 10).
    """

    def __init__(self, llm: ILLMProvider, max_samples: int = 10) -> None:
        self._llm = llm
        self._max_samples = max_samples

    async def summarize(self, filename: str, chunk_texts: list[str]) -> DocumentSummary:
        samples = self.sample(chunk_texts, self._max_samples)
        sample_text = "\n\n---\n\n".join(
            f"[Chunk {i + 1}]\n{text}" for i, text in enumerate(samples)
        )[:_MAX_SAMPLE_CHARS]

        try:
            response = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=_USER_PROMPT.format(filename=filename, samples=sample_text),
                temperature=0.3,
                max_tokens=800,
            )
            summary = self._parse_response(response)
        except (DocragError, ValueError, ValidationError) as exc:
            logger.warning(
                "document_summary_failed",
                filename=filename,
                error=str(exc),
                msg="Storing fallback summary.",
            )
            return DocumentSummary(summary=f"Document: {filename}", fallback=True)

        logger.info(
            "document_summary_generated",
            filename=filename,
            document_type=summary.document_type,
            topics=len(summary.topics),
            language=summary.language,
        )
        return summary

    @staticmethod
    def sample(items: list[str], max_samples: int) -> list[str]:
        """Pick up to *max_samples* items from the start, middle and end, in order."""
        if len(items) <= max_samples:
            return list(items)

        third = max(1, max_samples // 3)
        middle_start = len(items) // 3
        indices = (
            list(range(third))
            + list(range(middle_start, middle_start + max(1, max_samples - 2 * third)))
            + list(range(len(items) - third, len(items)))
        )
        unique = sorted(set(indices))[:max_samples]
        return [items[i] for i in unique]

    @staticmethod
    def _parse_response(response: str) -> DocumentSummary:
        """Parse the LLM JSON response, tolerating fences and surrounding prose.

        Raises ``ValueError`` (including ``json.JSONDecodeError``) when no
        JSON object can be recovered.
        """
        cleaned = response.strip()
        fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
        if fence_match:
            cleaned = fence_match.group(1).strip()
        else:
            brace_start = cleaned.find("{")
            brace_end = cleaned.rfind("}")
            if brace_start == -1 or brace_end <= brace_start:
                raise ValueError("No JSON object in summary response")
            cleaned = cleaned[brace_start : brace_end + 1]

        data: Any = json.loads(cleaned)
        if not isinstance(data, dict):
            raise ValueError("Summary response is not a JSON object")

        # Accept camelCase keys as well.
        data.setdefault("document_type", data.pop("documentType", "other"))
        data.setdefault("key_concepts", data.pop("keyConcepts", []))
        allowed = {"summary", "topics", "document_type", "key_concepts", "language"}
        return DocumentSummary.model_validate({k: v for k, v in data.items() if k in allowed})
