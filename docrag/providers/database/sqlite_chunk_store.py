"""SQLite-backed chunk store.

Persists :class:`~docrag.models.chunks.ChunkRecord` rows in the
``project_doc_chunks`` table.  Embeddings and enrichment metadata are stored
as JSON text.  ``(file_id, chunk_index)`` is unique, so a file can never
hold two chunks at the same position.

Writes run inside one implicit sqlite transaction per call: either every row
of the call is committed or the transaction is rolled back and nothing from
the call is visible.
"""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite
import structlog

from docrag.interfaces.chunk_store import IChunkStore
from docrag.models.chunks import ChunkMetadata, ChunkRecord
from docrag.utils.errors import ChunkStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docrag.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS project_doc_chunks (
    chunk_id         TEXT PRIMARY KEY,
    project_id       TEXT    NOT NULL,
    file_id          TEXT    NOT NULL,
    chunk_text       TEXT    NOT NULL,
    chunk_index      INTEGER NOT NULL,
    embedding        TEXT    NOT NULL,
    source_file      TEXT    NOT NULL,
    page_number      INTEGER,
    section_title    TEXT,
    token_count      INTEGER NOT NULL DEFAULT 0,
    metadata         TEXT    NOT NULL,
    embedding_model  TEXT    NOT NULL,
    created_at       TEXT    NOT NULL,
    UNIQUE(file_id, chunk_index)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_file ON project_doc_chunks(file_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_project ON project_doc_chunks(project_id);",
]

_INSERT_SQL = """\
INSERT INTO project_doc_chunks (
    chunk_id, project_id, file_id, chunk_text, chunk_index, embedding,
    source_file, page_number, section_title, token_count, metadata,
    embedding_model, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_COLUMNS = (
    "chunk_id, project_id, file_id, chunk_text, chunk_index, embedding, source_file, "
    "page_number, section_title, token_count, metadata, embedding_model, created_at"
)


class SQLiteChunkStore(IChunkStore):
    """Embedded-chunk persistence in a local SQLite database."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the project_doc_chunks table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("chunk_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # IChunkStore implementation
    # ------------------------------------------------------------------

    async def insert_chunks(
        self,
        chunks: list[ChunkRecord],
        replace_existing: bool = False,
    ) -> int:
        if not chunks:
            return 0

        file_ids = sorted({c.file_id for c in chunks})
        rows = [_record_to_row(c) for c in chunks]

        async with aiosqlite.connect(str(self._db_path)) as db:
            try:
                if replace_existing:
                    await db.executemany(
                        "DELETE FROM project_doc_chunks WHERE file_id = ?",
                        [(fid,) for fid in file_ids],
                    )
                await db.executemany(_INSERT_SQL, rows)
                await db.commit()
            except aiosqlite.Error as exc:
                await db.rollback()
                logger.error(
                    "chunk_insert_failed",
                    file_ids=file_ids,
                    chunks=len(chunks),
                    error=str(exc),
                )
                raise ChunkStoreError(
                    message=f"Failed to insert {len(chunks)} chunks: {exc}",
                    provider_name="sqlite",
                ) from exc

        logger.info(
            "chunks_inserted",
            file_ids=file_ids,
            chunks=len(chunks),
            replaced=replace_existing,
        )
        return len(chunks)

    async def delete_chunks_for_file(self, file_id: str) -> int:
        return await self._delete("file_id", file_id)

    async def delete_chunks_for_project(self, project_id: str) -> int:
        return await self._delete("project_id", project_id)

    async def get_chunks_for_file(self, file_id: str) -> list[ChunkRecord]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM project_doc_chunks "
                "WHERE file_id = ? ORDER BY chunk_index",
                (file_id,),
            )
            rows = await cursor.fetchall()
        return [_row_to_record(r) for r in rows]

    async def count_chunks_for_file(self, file_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM project_doc_chunks WHERE file_id = ?",
                (file_id,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def get_project_totals(self, project_id: str) -> tuple[int, int]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT COUNT(*), COALESCE(SUM(token_count), 0) "
                "FROM project_doc_chunks WHERE project_id = ?",
                (project_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return 0, 0
        return int(row[0]), int(row[1])

    def get_provider_name(self) -> str:
        return "sqlite_chunks"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _delete(self, column: str, value: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            try:
                cursor = await db.execute(
                    f"DELETE FROM project_doc_chunks WHERE {column} = ?",
                    (value,),
                )
                await db.commit()
            except aiosqlite.Error as exc:
                raise ChunkStoreError(
                    message=f"Failed to delete chunks for {column}={value}: {exc}",
                    provider_name="sqlite",
                ) from exc
            deleted = cursor.rowcount

        logger.info("chunks_deleted", **{column: value}, deleted=deleted)
        return deleted


def _record_to_row(record: ChunkRecord) -> tuple:
    return (
        record.chunk_id,
        record.project_id,
        record.file_id,
        record.chunk_text,
        record.chunk_index,
        json.dumps(record.embedding),
        record.source_file,
        record.page_number,
        record.section_title,
        record.token_count,
        record.metadata.model_dump_json(),
        record.embedding_model,
        record.created_at.isoformat(),
    )


def _row_to_record(row: aiosqlite.Row) -> ChunkRecord:
    data = dict(row)
    data["embedding"] = json.loads(data["embedding"])
    data["metadata"] = ChunkMetadata.model_validate_json(data["metadata"])
    return ChunkRecord(**data)
