"""SQLite-backed file repository.

Persists :class:`~docrag.models.files.FileRecord` rows in the
``project_files`` table.  Uses ``aiosqlite`` for async I/O; one connection
per operation.

Every status write is a single UPDATE that sets the status together with
its dependent fields, so a reader never observes e.g. ``completed`` with a
stale ``last_error``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from docrag.interfaces.file_repository import IFileRepository
from docrag.models.files import DocumentSummary, EmbeddingStatus, FileRecord
from docrag.utils.errors import FileNotFoundInRepositoryError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docrag.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS project_files (
    file_id            TEXT PRIMARY KEY,
    project_id         TEXT    NOT NULL,
    storage_path       TEXT    NOT NULL,
    filename           TEXT    NOT NULL,
    mime_type          TEXT    NOT NULL DEFAULT '',
    embedding_status   TEXT    NOT NULL DEFAULT 'pending',
    chunk_count        INTEGER NOT NULL DEFAULT 0,
    embedded_at        TEXT,
    last_error         TEXT,
    document_metadata  TEXT,
    created_at         TEXT    NOT NULL,
    updated_at         TEXT    NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_files_project ON project_files(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_files_status ON project_files(embedding_status);",
]

_INSERT_SQL = """\
INSERT INTO project_files (
    file_id, project_id, storage_path, filename, mime_type,
    embedding_status, chunk_count, embedded_at, last_error,
    document_metadata, created_at, updated_at
) VALUES (?, ?, ?, ?, ?, 'pending', 0, NULL, NULL, NULL, ?, ?);
"""

_SELECT_COLUMNS = (
    "file_id, project_id, storage_path, filename, mime_type, embedding_status, "
    "chunk_count, embedded_at, last_error, document_metadata, created_at, updated_at"
)

# Claim succeeds from any state except 'processing'.
_CLAIM_SQL = """\
UPDATE project_files
SET embedding_status = 'processing',
    chunk_count      = 0,
    embedded_at      = NULL,
    last_error       = NULL,
    updated_at       = ?
WHERE file_id = ? AND embedding_status != 'processing';
"""

_UPDATE_STATUS_SQL = """\
UPDATE project_files
SET embedding_status = ?,
    chunk_count      = ?,
    embedded_at      = ?,
    last_error       = ?,
    updated_at       = ?
WHERE file_id = ?
"""


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class SQLiteFileRepository(IFileRepository):
    """File-record persistence in a local SQLite database."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the project_files table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("file_repository_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # IFileRepository implementation
    # ------------------------------------------------------------------

    async def add_file(self, record: FileRecord) -> FileRecord:
        now = _now()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_SQL,
                (
                    record.file_id,
                    record.project_id,
                    record.storage_path,
                    record.filename,
                    record.mime_type,
                    now,
                    now,
                ),
            )
            await db.commit()
        logger.info("file_registered", file_id=record.file_id, project_id=record.project_id)
        stored = await self.get_file(record.file_id)
        if stored is None:
            raise FileNotFoundInRepositoryError(
                message=f"File {record.file_id} vanished right after insert",
                provider_name="sqlite",
            )
        return stored

    async def get_file(self, file_id: str) -> FileRecord | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_SELECT_COLUMNS} FROM project_files WHERE file_id = ?",
                (file_id,),
            )
            row = await cursor.fetchone()
        return _row_to_record(row) if row is not None else None

    async def claim_for_processing(self, file_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_CLAIM_SQL, (_now(), file_id))
            await db.commit()
            claimed = cursor.rowcount == 1

        if not claimed and await self.get_file(file_id) is None:
            raise FileNotFoundInRepositoryError(
                message=f"No file record for {file_id}",
                provider_name="sqlite",
            )
        return claimed

    async def update_status(
        self,
        file_id: str,
        status: EmbeddingStatus,
        *,
        expected_status: EmbeddingStatus | None = None,
        chunk_count: int = 0,
        last_error: str | None = None,
    ) -> FileRecord | None:
        now = _now()
        if status == EmbeddingStatus.COMPLETED:
            values = (status.value, chunk_count, now, None, now, file_id)
        elif status == EmbeddingStatus.FAILED:
            values = (status.value, 0, None, last_error or "unknown error", now, file_id)
        else:
            values = (status.value, 0, None, None, now, file_id)

        sql = _UPDATE_STATUS_SQL
        params: tuple = values
        if expected_status is not None:
            sql += " AND embedding_status = ?"
            params = (*values, expected_status.value)

        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            written = cursor.rowcount == 1

        record = await self.get_file(file_id)
        if record is None:
            raise FileNotFoundInRepositoryError(
                message=f"No file record for {file_id}",
                provider_name="sqlite",
            )
        return record if written else None

    async def list_files(
        self,
        project_id: str,
        status: EmbeddingStatus | None = None,
    ) -> list[FileRecord]:
        sql = f"SELECT {_SELECT_COLUMNS} FROM project_files WHERE project_id = ?"
        params: tuple = (project_id,)
        if status is not None:
            sql += " AND embedding_status = ?"
            params = (project_id, status.value)
        sql += " ORDER BY created_at, file_id"

        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_record(r) for r in rows]

    async def list_pending(self, project_id: str | None = None, limit: int = 50) -> list[FileRecord]:
        sql = f"SELECT {_SELECT_COLUMNS} FROM project_files WHERE embedding_status = 'pending'"
        params: tuple = ()
        if project_id is not None:
            sql += " AND project_id = ?"
            params = (project_id,)
        sql += " ORDER BY created_at, file_id LIMIT ?"
        params = (*params, limit)

        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [_row_to_record(r) for r in rows]

    async def count_by_status(self, project_id: str) -> dict[EmbeddingStatus, int]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT embedding_status, COUNT(*) AS total FROM project_files "
                "WHERE project_id = ? GROUP BY embedding_status",
                (project_id,),
            )
            rows = await cursor.fetchall()

        counts = {status: 0 for status in EmbeddingStatus}
        for row in rows:
            counts[EmbeddingStatus(row["embedding_status"])] = row["total"]
        return counts

    async def set_document_metadata(self, file_id: str, summary: DocumentSummary) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE project_files SET document_metadata = ?, updated_at = ? WHERE file_id = ?",
                (summary.model_dump_json(), _now(), file_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise FileNotFoundInRepositoryError(
                    message=f"No file record for {file_id}",
                    provider_name="sqlite",
                )

    def get_provider_name(self) -> str:
        return "sqlite_files"


def _row_to_record(row: aiosqlite.Row) -> FileRecord:
    data = dict(row)
    metadata = data.pop("document_metadata")
    return FileRecord(
        **data,
        document_metadata=DocumentSummary.model_validate_json(metadata) if metadata else None,
    )
