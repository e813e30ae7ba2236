"""Unit tests for the LLM-backed helpers: TableDescriber and DocumentSummarizer."""

from __future__ import annotations

from docrag.services.ingestion.summarizer import DocumentSummarizer
from docrag.services.ingestion.table_describer import TableDescriber
from docrag.services.ingestion.tables import ParsedTable
from docrag.utils.errors import LLMError, RateLimitError
from tests.conftest import FakeLLMProvider

_TABLE = ParsedTable(
    title="Tabel 4.162",
    columns=["Gebruiksfunctie", "Hoogte"],
    rows=[["woonfunctie", "2,6 m"], ["kantoorfunctie", "2,4 m"]],
)


# ======================================================================
# TableDescriber
# ======================================================================


class TestTableDescriber:
    async def test_without_llm_uses_row_sentences(self) -> None:
        sentences, by_llm = await TableDescriber().describe(_TABLE)

        assert by_llm is False
        assert sentences[0] == "According to Tabel 4.162, Gebruiksfunctie: woonfunctie, Hoogte: 2,6 m."

    async def test_llm_response_is_cleaned(self) -> None:
        llm = FakeLLMProvider(
            [
                "# Sentences\n"
                "1. A woonfunctie requires a height of 2,6 m per Tabel 4.162.\n"
                "| not | a sentence |\n"
                "short\n"
                "* A kantoorfunctie requires a height of 2,4 m per Tabel 4.162."
            ]
        )

        sentences, by_llm = await TableDescriber(llm=llm, pause_s=0).describe(_TABLE)

        assert by_llm is True
        assert sentences == [
            "A woonfunctie requires a height of 2,6 m per Tabel 4.162.",
            "A kantoorfunctie requires a height of 2,4 m per Tabel 4.162.",
        ]
        assert "| Gebruiksfunctie | Hoogte |" in llm.prompts[0]

    async def test_llm_error_falls_back(self) -> None:
        llm = FakeLLMProvider([RateLimitError(message="slow down")])

        sentences, by_llm = await TableDescriber(llm=llm, pause_s=0).describe(_TABLE)

        assert by_llm is False
        assert len(sentences) == 2

    async def test_empty_llm_response_falls_back(self) -> None:
        llm = FakeLLMProvider(["   "])

        _, by_llm = await TableDescriber(llm=llm, pause_s=0).describe(_TABLE)

        assert by_llm is False

    async def test_table_without_rows_skips_llm(self) -> None:
        llm = FakeLLMProvider(["should not be used"])

        sentences, by_llm = await TableDescriber(llm=llm, pause_s=0).describe(
            ParsedTable(title="Tabel 9.1")
        )

        assert by_llm is False
        assert llm.prompts == []
        assert sentences == ["Tabel 9.1 contains reference values for the items listed in this table."]


# ======================================================================
# DocumentSummarizer
# ======================================================================


class TestSampling:
    def test_short_documents_are_sent_whole(self) -> None:
        assert DocumentSummarizer.sample(["a", "b", "c"], 10) == ["a", "b", "c"]

    def test_samples_beginning_middle_and_end(self) -> None:
        items = [str(i) for i in range(30)]

        sample = DocumentSummarizer.sample(items, 10)

        assert sample == ["0", "1", "2", "10", "11", "12", "13", "27", "28", "29"]


class TestSummarize:
    async def test_fenced_json_is_parsed(self) -> None:
        llm = FakeLLMProvider(
            [
                "Here you go:\n```json\n"
                '{"summary": "Rules for room heights.", "topics": ["heights"], '
                '"document_type": "building regulation", "key_concepts": ["4.162"], '
                '"language": "nl"}\n```'
            ]
        )

        summary = await DocumentSummarizer(llm).summarize("bouwbesluit.xml", ["chunk one"])

        assert summary.summary == "Rules for room heights."
        assert summary.document_type == "building regulation"
        assert summary.language == "nl"
        assert summary.fallback is False
        assert "bouwbesluit.xml" in llm.prompts[0]

    async def test_json_inside_prose_and_camel_case_keys(self) -> None:
        llm = FakeLLMProvider(
            ['Sure! {"summary": "A parking standard.", "documentType": "standard", '
             '"keyConcepts": ["parking"]} Hope that helps.']
        )

        summary = await DocumentSummarizer(llm).summarize("parking.pdf", ["text"])

        assert summary.document_type == "standard"
        assert summary.key_concepts == ["parking"]

    async def test_unparseable_response_falls_back(self) -> None:
        llm = FakeLLMProvider(["I cannot help with that."])

        summary = await DocumentSummarizer(llm).summarize("report.pdf", ["text"])

        assert summary.fallback is True
        assert summary.summary == "Document: report.pdf"

    async def test_llm_error_falls_back(self) -> None:
        llm = FakeLLMProvider([LLMError(message="boom")])

        summary = await DocumentSummarizer(llm).summarize("report.pdf", ["text"])

        assert summary.fallback is True

    async def test_sample_text_is_capped(self) -> None:
        llm = FakeLLMProvider(['{"summary": "long"}'])

        await DocumentSummarizer(llm).summarize("big.txt", ["x" * 5000] * 5)

        assert len(llm.prompts[0]) < 9000
