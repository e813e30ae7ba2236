"""SQLite persistence for file records and embedded chunks.

Both providers share one database file (``database_path``) but own
separate tables; call ``initialize()`` on each before first use.
"""

from docrag.providers.database.sqlite_chunk_store import SQLiteChunkStore
from docrag.providers.database.sqlite_file_repository import SQLiteFileRepository

__all__ = ["SQLiteChunkStore", "SQLiteFileRepository"]
