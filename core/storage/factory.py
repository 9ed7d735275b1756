"""
Storage factory for creating record store instances.

This module translates configuration into persistence backends and
record stores, so the store itself never reads settings.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Union

from core.logging import get_logger
from core.storage.base import BaseSnapshotPersistence
from core.storage.persistence import JSONFilePersistence, MemoryPersistence
from core.storage.store import RecordStore


if TYPE_CHECKING:
    from core.config import Settings


logger = get_logger(__name__)


class StorageBackend(str, Enum):
    """Supported snapshot backends."""
    JSON = "json"
    MEMORY = "memory"


def get_storage_backend(settings: "Settings") -> StorageBackend:
    """
    Determine which storage backend to use based on settings.
    
    Args:
        settings: Application settings
        
    Returns:
        The configured storage backend
    """
    backend_str = settings.storage_backend.lower()
    
    try:
        return StorageBackend(backend_str)
    except ValueError:
        raise ValueError(
            f"Unsupported storage backend: {backend_str}. "
            f"Supported backends: {[b.value for b in StorageBackend]}"
        )


def create_persistence(settings: "Settings") -> BaseSnapshotPersistence:
    """
    Create a snapshot backend based on settings.
    
    Args:
        settings: Application settings
        
    Returns:
        Configured persistence backend
    """
    backend = get_storage_backend(settings)
    
    if backend == StorageBackend.JSON:
        logger.info("Using JSON file persistence", path=str(settings.database_path))
        return JSONFilePersistence(settings.database_path)
    
    elif backend == StorageBackend.MEMORY:
        logger.info("Using in-memory persistence")
        return MemoryPersistence()
    
    else:
        raise ValueError(f"Unsupported backend: {backend}")


def create_record_store(
    settings: "Settings",
    clock: Optional[Callable[[], datetime]] = None,
    token_factory: Optional[Callable[[], str]] = None,
) -> RecordStore:
    """
    Create and open a record store based on settings.
    
    Args:
        settings: Application settings
        clock: Optional UTC clock override
        token_factory: Optional refresh token generator override
        
    Returns:
        Opened record store
    """
    if settings.database_fresh_start:
        logger.warning("Fresh start requested, discarding stored snapshot")
    
    return RecordStore(
        create_persistence(settings),
        fresh=settings.database_fresh_start,
        clock=clock,
        token_factory=token_factory,
    )


def open_record_store(path: Union[str, Path], fresh: bool = False) -> RecordStore:
    """
    Open a record store backed by the JSON file at ``path``.
    
    Args:
        path: Snapshot file location
        fresh: Remove any existing file before opening
    """
    return RecordStore(JSONFilePersistence(path), fresh=fresh)
