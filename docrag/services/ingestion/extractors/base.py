"""Base class for format-specific text extractors."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docrag.models.chunks import ExtractionResult


class BaseExtractor(ABC):
    """Turns the raw bytes of one file format into text segments.

    Subclasses declare the MIME types and filename extensions they accept;
    :class:`~docrag.services.ingestion.extractors.DocumentExtractor` routes on
    those.  Extractors leave ``total_tokens`` at 0; the router fills it in
    with the configured token counter.
    """

    mime_types: frozenset[str] = frozenset()
    extensions: frozenset[str] = frozenset()

    @abstractmethod
    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        """Extract segments from *data*.

        Raises
        ------
        docrag.utils.errors.ExtractionError
            If the content is corrupt, encrypted or malformed.
        """

    def accepts(self, mime_type: str, filename: str) -> bool:
        if mime_type and mime_type.split(";")[0].strip().lower() in self.mime_types:
            return True
        lowered = filename.lower()
        return any(lowered.endswith(ext) for ext in self.extensions)


def decode_text(data: bytes, warnings: list[str]) -> str:
    """Decode UTF-8 (BOM tolerant); undecodable bytes are replaced with a warning."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        warnings.append("File is not valid UTF-8; undecodable bytes were replaced")
        return data.decode("utf-8-sig", errors="replace")
