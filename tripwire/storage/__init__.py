"""Registry storage backends for Tripwire."""

from __future__ import annotations

from .base import RegistryStore
from .filesystem import FileSystemRegistryStore
from .memory import InMemoryRegistryStore

__all__ = [
    "RegistryStore",
    "FileSystemRegistryStore",
    "InMemoryRegistryStore",
    "create_store",
]


def create_store(store_url: str) -> RegistryStore:
    """
    Create a registry store from URL.

    Supported URLs:
    - file:///path/to/registry-dir
    - memory://

    A bare path is treated as a registry directory.

    Args:
        store_url: Storage URL.

    Returns:
        RegistryStore instance.
    """
    if store_url.startswith("memory://"):
        return InMemoryRegistryStore()
    if store_url.startswith("file://"):
        return FileSystemRegistryStore(store_url[len("file://") :])
    if "://" in store_url:
        scheme = store_url.split("://", 1)[0]
        raise ValueError(f"Unsupported registry store scheme: {scheme}")
    return FileSystemRegistryStore(store_url)
