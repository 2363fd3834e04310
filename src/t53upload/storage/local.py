"""Local filesystem storage backend."""

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import BinaryIO

from t53upload.core.exceptions import StorageError
from t53upload.storage.base import StorageBackend

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536  # 64KB chunks

# Owner read-only
HARDENED_FILE_MODE = stat.S_IRUSR


class LocalStorageBackend(StorageBackend):
    """Writes uploads straight into the staging directory."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    def ensure_directory(self) -> None:
        if not self.base_path.exists():
            logger.info(f"Creating staging directory at {self.base_path.resolve()}")
            self.base_path.mkdir(parents=True, exist_ok=True)

    def get_target_path(self, file_name: str) -> Path:
        return self.base_path / file_name

    async def store_file(self, file_name: str, file_data: BinaryIO) -> str:
        """Stream ``file_data`` to the staging directory.

        A partially written file is removed if the copy fails or the
        surrounding task is cancelled.
        """
        target_path = self.get_target_path(file_name)

        try:
            # A previous upload of the same name has been made read-only
            if target_path.exists():
                target_path.unlink()

            with open(target_path, "wb") as f:
                while chunk := file_data.read(CHUNK_SIZE):
                    f.write(chunk)
                    # Yield to the event loop between chunks
                    await asyncio.sleep(0)
        except (OSError, ValueError) as e:
            # ValueError: the name cannot be represented on this filesystem
            self._remove_partial(target_path)
            raise StorageError(f"Failed to write {target_path}: {e}") from e
        except BaseException:
            self._remove_partial(target_path)
            raise
        finally:
            self._harden_permissions(target_path)

        return str(target_path)

    @staticmethod
    def _remove_partial(target_path: Path) -> None:
        try:
            target_path.unlink(missing_ok=True)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to remove partial upload {target_path}: {e}")

    @staticmethod
    def _harden_permissions(target_path: Path) -> None:
        """Make the file owner read-only; failures never affect the upload."""
        if os.name != "posix" or not target_path.exists():
            return
        try:
            os.chmod(target_path, HARDENED_FILE_MODE)
        except OSError as e:
            logger.warning(f"Unable to restrict permissions on {target_path}: {e}")
