"""
Local Blob Storage

Stores files on the local filesystem. Used in development and tests.
"""
import asyncio
import logging
from pathlib import Path

from .base import BlobStorage, StorageError

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Filesystem-backed storage rooted at a directory."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root not in target.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    async def upload(self, path: str, data: bytes, content_type: str = "text/plain") -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            # "xb" refuses to overwrite an existing blob
            with open(target, "xb") as fh:
                fh.write(data)

        try:
            await asyncio.to_thread(_write)
        except FileExistsError:
            raise StorageError(f"Blob already exists: {path}")
        except OSError as e:
            raise StorageError(f"Local write failed for {path}: {e}")

        logger.debug(f"Stored {len(data)} bytes at {target} ({content_type})")

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path.lstrip('/')}"
