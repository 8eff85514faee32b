# tbauth_core/storage/__init__.py

from .models import DeviceRecord, KeyHandle
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.file_provider import FileStorage
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for selecting the runtime storage backend.

        - file (default), rooted at config["path"] or TBAUTH_DB_PATH
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("TBAUTH_STORAGE_PROVIDER", "file")

    if provider == "memory":
        return InMemoryStorage()

    if provider == "file":
        path = config.get("path") or os.getenv("TBAUTH_DB_PATH")
        if not path:
            raise ValueError("file storage needs a root path (config 'path' or TBAUTH_DB_PATH)")
        return FileStorage(path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "DeviceRecord",
    "KeyHandle",
    "StorageProvider",
    "InMemoryStorage",
    "FileStorage",
    "load_storage_provider",
]
