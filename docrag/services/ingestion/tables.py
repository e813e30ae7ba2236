"""Table representation shared by the XML extractor and the chunk enricher.

Both paths reduce a table to a title, column headers and data rows, then
render it as markdown and as one synthetic sentence per data row.  The
sentences make row values retrievable by natural-language queries that
would never match the raw cell grid.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_TABLE_NUMBER_RE = re.compile(r"\d+(?:\.\d+)+")


@dataclass(frozen=True)
class ParsedTable:
    """A table reduced to header columns and data rows of cell strings."""

    title: str
    columns: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    @property
    def table_number(self) -> str | None:
        """The dotted number in the title, e.g. ``"4.162"``."""
        match = _TABLE_NUMBER_RE.search(self.title)
        return match.group(0) if match else None

    @property
    def name(self) -> str:
        return self.title or "Table"

    def to_markdown(self) -> str:
        lines: list[str] = []
        if self.columns:
            lines.append("| " + " | ".join(self.columns) + " |")
            lines.append("| " + " | ".join("---" for _ in self.columns) + " |")
        for row in self.rows:
            lines.append("| " + " | ".join(row) + " |")
        return "\n".join(lines)


def row_sentences(table: ParsedTable) -> list[str]:
    """Describe each data row as one sentence naming the table.

    With headers: ``"According to Table 4.162, use: living, height: 2.6."``.
    Without headers: ``"Table 4.162 contains the following information: living, 2.6."``.
    Rows with no non-empty cells are skipped.
    """
    sentences: list[str] = []
    for row in table.rows:
        values = [cell.strip() for cell in row]
        if not any(values):
            continue

        if table.columns:
            pairs = []
            for i, value in enumerate(values):
                if not value:
                    continue
                column = table.columns[i] if i < len(table.columns) else ""
                pairs.append(f"{column or f'column {i + 1}'}: {value}")
            sentences.append(f"According to {table.name}, {', '.join(pairs)}.")
        else:
            joined = ", ".join(v for v in values if v)
            sentences.append(f"{table.name} contains the following information: {joined}.")
    return sentences


def generic_sentence(table_name: str) -> str:
    """Sentence used when a table was detected but no row could be parsed."""
    return f"{table_name} contains reference values for the items listed in this table."
