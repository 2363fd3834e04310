"""Abstract storage backend interface."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO


class StorageBackend(ABC):
    """Abstract base class for upload storage backends."""

    @abstractmethod
    def ensure_directory(self) -> None:
        """Create the staging location if it does not exist yet."""
        pass

    @abstractmethod
    def get_target_path(self, file_name: str) -> Path:
        """Generate the target storage path for ``file_name``.

        Args:
            file_name: Final (timestamp-prefixed) file name

        Returns:
            Target path for the file
        """
        pass

    @abstractmethod
    async def store_file(self, file_name: str, file_data: BinaryIO) -> str:
        """Store an uploaded file, replacing any file of the same name.

        Args:
            file_name: Final (timestamp-prefixed) file name
            file_data: File content stream

        Returns:
            Final storage path

        Raises:
            StorageError: The file could not be written
        """
        pass
