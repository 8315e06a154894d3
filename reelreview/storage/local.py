"""
Local filesystem storage, used in development and tests.
"""

import json
import logging
import os
from pathlib import Path

from ..errors import StorageError, StorageNotFound
from .base import TemporaryStorage, StoredObject, sha256_of

logger = logging.getLogger(__name__)

_META_SUFFIX = ".meta.json"


class LocalStorage(TemporaryStorage):
    """Stores objects under `base_path`, content type kept in a sidecar file"""

    def __init__(self, base_path: str, base_url: str = "http://localhost:8000/files"):
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        root = self.base_path.resolve()
        if root != path and root not in path.parents:
            raise StorageError(f"Invalid storage key: {key}")
        return path

    def put(self, key, data, content_type="application/octet-stream"):
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        Path(str(path) + _META_SUFFIX).write_text(json.dumps({"content_type": content_type}))
        return StoredObject(key=key, size_bytes=len(data), content_type=content_type, sha256=sha256_of(data))

    def get(self, key):
        path = self._path(key)
        if not path.is_file():
            raise StorageNotFound(f"File does not exist: {key}")
        return path.read_bytes()

    def metadata(self, key):
        path = self._path(key)
        if not path.is_file():
            raise StorageNotFound(f"File does not exist: {key}")
        content_type = "video/mp4"
        meta_path = Path(str(path) + _META_SUFFIX)
        if meta_path.is_file():
            content_type = json.loads(meta_path.read_text()).get("content_type") or content_type
        return StoredObject(key=key, size_bytes=path.stat().st_size, content_type=content_type)

    def exists(self, key):
        return self._path(key).is_file()

    def delete(self, key):
        path = self._path(key)
        if not path.is_file():
            logger.warning(f"File does not exist (already deleted?): {key}")
            return True
        try:
            os.remove(path)
            meta_path = Path(str(path) + _META_SUFFIX)
            if meta_path.is_file():
                os.remove(meta_path)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e
        return True

    def public_url(self, key):
        return f"{self.base_url}/{key}"
