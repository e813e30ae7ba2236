"""Object storage providers for raw uploaded files.

LocalObjectStorage keeps files under ``storage_root`` on disk;
HttpObjectStorage talks to a remote endpoint when ``storage_base_url`` is set.
"""

from docrag.providers.storage.http_storage import HttpObjectStorage
from docrag.providers.storage.local_storage import LocalObjectStorage

__all__ = ["HttpObjectStorage", "LocalObjectStorage"]
