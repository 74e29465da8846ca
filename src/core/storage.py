"""
Storage Abstraction Layer - The Bridge Pattern

Provides a clean interface for object storage with SupabaseStorage
(production, public bucket) and LocalStorage (development).

Keys are flat object names such as ``u1_1700000000000_clean.png``; the
public URL of an object always ends with its key, which is what lets the
delete path recover the key from a stored URL.
"""

import asyncio
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from supabase import Client, create_client

from src.core.config import Settings
from src.core.exceptions import StorageError
from src.core.logging import get_logger
from src.core.metrics import record_provider_call

logger = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def safe_key_part(value: str) -> str:
    """Make a caller-supplied value safe to embed in a flat object key."""
    return _UNSAFE_KEY_CHARS.sub("_", value)


class IStorage(ABC):
    """Interface for storage operations - The Bridge"""

    @abstractmethod
    async def upload(
        self,
        file_data: bytes,
        key: str,
        content_type: str = "image/png"
    ) -> str:
        """
        Upload a file under ``key``.

        Args:
            file_data: Raw bytes of the file
            key: Object name inside the bucket
            content_type: MIME type of the file

        Returns:
            The storage key, usable with get_public_url()

        Raises:
            StorageError: if the backend rejects the upload
        """
        pass

    @abstractmethod
    def get_public_url(self, key: str) -> str:
        """Return the public URL for an uploaded key."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete an object from storage.

        Returns:
            True if deleted, False otherwise
        """
        pass

    async def aclose(self):
        """Release any network resources held by the backend."""
        return None

    @staticmethod
    def key_from_url(url: str) -> str:
        """Recover the storage key from a public URL (its last path segment)."""
        path = urlparse(url).path or url
        return path.rstrip("/").split("/")[-1]


class SupabaseStorage(IStorage):
    """
    Supabase Storage implementation on the supabase SDK.

    The SDK client is synchronous, so its network calls run in a worker
    thread. Uploads never overwrite an existing object.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        bucket: str = "prendas",
        cache_control: str = "3600",
        client: Optional[Client] = None
    ):
        self.bucket = bucket
        self.cache_control = cache_control
        self._client = client or create_client(url, service_key)

    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    @staticmethod
    def _error_message(error: Exception) -> str:
        # StorageApiError carries the API's message separately
        return getattr(error, "message", None) or str(error)

    async def upload(
        self,
        file_data: bytes,
        key: str,
        content_type: str = "image/png"
    ) -> str:
        start = time.perf_counter()
        try:
            await asyncio.to_thread(
                self._bucket().upload,
                key,
                file_data,
                file_options={
                    "content-type": content_type,
                    "cache-control": self.cache_control,
                    "upsert": "false",
                }
            )
        except Exception as e:
            record_provider_call("storage", "upload", "error", time.perf_counter() - start)
            raise StorageError(self._error_message(e)) from e

        record_provider_call("storage", "upload", "success", time.perf_counter() - start)
        logger.info("storage_object_uploaded", key=key, size=len(file_data))
        return key

    def get_public_url(self, key: str) -> str:
        # Some SDK releases append an empty query string
        return self._bucket().get_public_url(key).rstrip("?")

    async def delete(self, key: str) -> bool:
        start = time.perf_counter()
        try:
            await asyncio.to_thread(self._bucket().remove, [key])
        except Exception as e:
            record_provider_call("storage", "delete", "error", time.perf_counter() - start)
            raise StorageError(self._error_message(e)) from e

        record_provider_call("storage", "delete", "success", time.perf_counter() - start)
        return True


class LocalStorage(IStorage):
    """Local filesystem storage implementation for development."""

    def __init__(
        self,
        base_path: str = "./data/storage",
        public_base_url: str = "http://localhost:5001"
    ):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        """Resolve a key to a file directly inside base_path."""
        path = (self.base_path / key).resolve()
        if path.parent != self.base_path.resolve():
            raise StorageError(f"Invalid storage key: {key}")
        return path

    async def upload(
        self,
        file_data: bytes,
        key: str,
        content_type: str = "image/png"
    ) -> str:
        file_path = self._path_for(key)
        try:
            with open(file_path, "wb") as f:
                f.write(file_data)
        except OSError as e:
            raise StorageError(f"Storage upload failed: {e}") from e

        return key

    def get_public_url(self, key: str) -> str:
        """Local objects are served by the app under /static/storage."""
        return f"{self.public_base_url}/static/storage/{key}"

    async def delete(self, key: str) -> bool:
        file_path = self._path_for(key)
        if file_path.exists():
            file_path.unlink()
            return True
        return False


def create_storage(settings: Settings) -> IStorage:
    """Build the storage backend selected by configuration."""
    if settings.use_supabase_storage:
        logger.info("storage_backend_selected", backend="supabase", bucket=settings.STORAGE_BUCKET)
        return SupabaseStorage(
            url=settings.SUPABASE_URL,
            service_key=settings.SUPABASE_SERVICE_KEY,
            bucket=settings.STORAGE_BUCKET,
            cache_control=settings.STORAGE_CACHE_CONTROL
        )

    logger.info("storage_backend_selected", backend="local", path=settings.LOCAL_STORAGE_PATH)
    return LocalStorage(
        base_path=settings.LOCAL_STORAGE_PATH,
        public_base_url=settings.PUBLIC_BASE_URL
    )
