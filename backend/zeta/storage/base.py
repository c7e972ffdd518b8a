"""
Blob Storage Base Class

Abstract interface for storing generated files and resolving
durable URLs for them.
"""
from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a blob cannot be stored."""
    pass


class BlobStorage(ABC):
    """
    Abstract base class for blob storage backends.

    Paths are relative, slash-separated keys such as
    "projects/<project_id>/ai/<stamp>-<slug>".
    """

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "text/plain") -> None:
        """
        Store `data` under `path`.

        Raises:
            StorageError: if the backend rejects the write or the path exists
        """
        pass

    @abstractmethod
    def get_public_url(self, path: str) -> str:
        """Return the durable URL for a stored path."""
        pass
