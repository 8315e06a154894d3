"""
Storage interfaces.

Temporary storage holds uploaded videos (and comment attachments) until they
are archived. Archive storage is the permanent home of approved videos.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class StoredObject:
    """Metadata about a stored object"""
    key: str
    size_bytes: int
    content_type: str = "application/octet-stream"
    sha256: Optional[str] = None

    @property
    def name(self) -> str:
        return self.key.rsplit("/", 1)[-1]


@dataclass
class ArchivedFile:
    """Result of a permanent-storage upload"""
    file_id: str
    web_view_link: str
    embed_url: str


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class TemporaryStorage(ABC):
    """Key/value blob store addressed by slash-separated keys"""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> StoredObject:
        ...

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Raises StorageNotFound when the key is missing."""

    @abstractmethod
    def metadata(self, key: str) -> StoredObject:
        """Raises StorageNotFound when the key is missing."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete `key`. A missing key counts as deleted and returns True.
        Raises StorageError when the backend call fails.
        """

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...


class ArchiveStorage(ABC):
    """Permanent video storage"""

    @property
    @abstractmethod
    def configured(self) -> bool:
        ...

    @abstractmethod
    def upload(self, filename: str, data: bytes, content_type: str = "video/mp4") -> ArchivedFile:
        """Raises StorageError on failure."""
