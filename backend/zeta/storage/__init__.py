# Blob Storage
from typing import Optional
import logging

from .base import BlobStorage, StorageError
from .local import LocalBlobStorage
from .supabase import SupabaseBlobStorage
from ..config import settings

logger = logging.getLogger(__name__)

# Singleton storage instance
_storage_instance: Optional[BlobStorage] = None


def get_blob_storage() -> BlobStorage:
    """
    Get or create the blob storage backend.

    Backend is selected based on STORAGE_BACKEND.
    """
    global _storage_instance

    if _storage_instance is None:
        settings.validate_storage()
        if settings.storage_backend == "supabase":
            logger.info("Initializing Supabase blob storage")
            _storage_instance = SupabaseBlobStorage(
                base_url=settings.supabase_url,
                service_role_key=settings.supabase_service_role_key,
                bucket=settings.storage_bucket,
            )
        else:
            logger.info(f"Initializing local blob storage at {settings.storage_dir}")
            _storage_instance = LocalBlobStorage(
                root=settings.storage_dir,
                public_base_url=settings.storage_public_base_url,
            )

    return _storage_instance


def set_blob_storage(storage: Optional[BlobStorage]) -> None:
    """Install a storage instance (or clear it with None)."""
    global _storage_instance
    _storage_instance = storage


__all__ = [
    "BlobStorage",
    "StorageError",
    "LocalBlobStorage",
    "SupabaseBlobStorage",
    "get_blob_storage",
    "set_blob_storage",
]
