"""Local filesystem object storage."""

import asyncio
from pathlib import Path
from typing import Optional

from trustrag.core.config import settings
from trustrag.core.exceptions import StorageError


class LocalObjectStorage:
    """Reads raw document bytes from a directory keyed by storage key."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = Path(root or settings.storage_root).resolve()

    def path_for(self, key: str) -> Path:
        """
        Resolve a storage key inside the root.

        Raises:
            StorageError: If the key escapes the storage root.
        """
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Storage key escapes root: {key}")
        return path

    async def get(self, key: str) -> bytes:
        """
        Read the bytes stored under a key.

        Args:
            key: Storage key.

        Returns:
            Raw document bytes.

        Raises:
            StorageError: If the object cannot be read.
        """
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {str(e)}") from e
