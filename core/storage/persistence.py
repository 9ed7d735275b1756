"""
Snapshot persistence backends.

Provides implementations of ``BaseSnapshotPersistence`` for:
- A single JSON file on disk (whole-file rewrite on every save)
- Process memory (tests and throwaway tooling)
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from core.logging import get_logger
from core.storage.base import BaseSnapshotPersistence, Snapshot
from core.storage.codec import decode_snapshot, encode_snapshot
from core.storage.errors import PersistenceError, SnapshotNotFoundError


logger = get_logger(__name__)


class JSONFilePersistence(BaseSnapshotPersistence):
    """
    Stores the snapshot as one JSON document at ``path``.
    
    Saves write the encoded snapshot to a temporary file in the same
    directory and rename it over the target, so readers only ever see
    the previous or the new complete document.
    """
    
    def __init__(self, path: Union[str, Path]):
        """
        Initialize file persistence.
        
        Args:
            path: Location of the snapshot file. The parent directory
                must exist.
        """
        self._path = Path(path)
    
    @property
    def path(self) -> Path:
        return self._path
    
    @property
    def location(self) -> str:
        return str(self._path)
    
    def load(self) -> Snapshot:
        """Read the whole file and decode it."""
        try:
            data = self._path.read_bytes()
        except FileNotFoundError as e:
            raise SnapshotNotFoundError(f"no snapshot at {self._path}") from e
        except OSError as e:
            raise PersistenceError(f"failed to read {self._path}: {e}") from e
        
        return decode_snapshot(data)
    
    def save(self, snapshot: Snapshot) -> None:
        """Encode the snapshot and replace the file with it."""
        data = encode_snapshot(snapshot)
        directory = self._path.parent
        tmp_name: Optional[str] = None
        
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=directory,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            raise PersistenceError(f"failed to write {self._path}: {e}") from e
        finally:
            if tmp_name is not None:
                _discard(tmp_name)
        
        logger.debug("Snapshot written", path=str(self._path), size=len(data))
    
    def remove(self) -> None:
        """Delete the snapshot file if present."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceError(f"failed to remove {self._path}: {e}") from e
        
        logger.info("Snapshot file removed", path=str(self._path))


class MemoryPersistence(BaseSnapshotPersistence):
    """
    Keeps the encoded snapshot in memory.
    
    Goes through the same codec as the file backend, so a round trip
    behaves exactly like one through disk.
    """
    
    def __init__(self, initial: Optional[bytes] = None):
        self._data = initial
    
    @property
    def location(self) -> str:
        return "memory"
    
    @property
    def raw(self) -> Optional[bytes]:
        """Encoded snapshot as last saved, or None."""
        return self._data
    
    def load(self) -> Snapshot:
        if self._data is None:
            raise SnapshotNotFoundError("no snapshot in memory")
        return decode_snapshot(self._data)
    
    def save(self, snapshot: Snapshot) -> None:
        self._data = encode_snapshot(snapshot)
    
    def remove(self) -> None:
        self._data = None


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove temporary snapshot", path=path, error=str(e))
