"""Upload admission pipeline.

Decides whether an upload attempt is accepted and, if so, persists it to
the staging directory. Checks run in a fixed order and stop at the first
failure:

1. maintenance gate
2. one-time password (only when a key is loaded)
3. client user agent (only when one is required)
4. minimum / maximum size (only when positive)
5. sentinel extension, then inner file type
6. path separators in the final name
7. write to storage
"""

import logging
import re
import time
from typing import Callable, Optional

from t53upload.core.exceptions import CredentialLoadError
from t53upload.core.logging import NOTIFICATION_LOGGER_NAME
from t53upload.storage.base import StorageBackend
from t53upload.storage.local import LocalStorageBackend
from t53upload.uploads.maintenance import MaintenanceGate
from t53upload.uploads.models import UploadAttempt, UploadPolicy, UploadStatus
from t53upload.uploads.otp import OtpVerifier

logger = logging.getLogger(__name__)
notification_logger = logging.getLogger(NOTIFICATION_LOGGER_NAME)

SENTINEL_EXTENSION = ".bsat53"
ALLOWED_INNER_EXTENSIONS = frozenset([".zip", ".md"])

_INVALID_NAME_CHARACTERS = re.compile(r"[/\\\x00]")
_PATH_SEPARATORS = re.compile(r"[/\\]")


def split_extension(file_name: str) -> tuple[str, str]:
    """Split ``file_name`` at its last dot.

    Unlike :func:`os.path.splitext` a leading dot starts an extension, so
    ``.zip.bsat53`` splits into ``.zip`` and ``.bsat53``. A trailing dot or
    a dot followed by a path separator yields no extension.
    """
    index = file_name.rfind(".")
    if index == -1 or index == len(file_name) - 1:
        return file_name.rstrip("."), ""
    extension = file_name[index:]
    if _PATH_SEPARATORS.search(extension):
        return file_name, ""
    return file_name[:index], extension


def build_stored_file_name(timestamp: int, file_name: str) -> str:
    """Name an upload is persisted under: ``{timestamp}_{file_name}``."""
    return f"{timestamp}_{file_name}"


class UploadApi:
    """Entry point used by the HTTP layer and the scheduler."""

    def __init__(
        self,
        config: UploadPolicy,
        storage: Optional[StorageBackend] = None,
        verifier: Optional[OtpVerifier] = None,
        gate: Optional[MaintenanceGate] = None,
        timestamp: Callable[[], int] = time.monotonic_ns,
    ):
        self.config = config
        self.storage = storage or LocalStorageBackend(config.staging_directory)
        self.verifier = verifier or OtpVerifier()
        self.gate = gate or MaintenanceGate()
        self._timestamp = timestamp

    # ---------------- Lifecycle ----------------

    def init(self) -> None:
        """Prepare the staging directory and load the OTP key.

        Safe to call more than once. A key that cannot be loaded here is
        fatal: :class:`CredentialLoadError` propagates to the caller.
        """
        logger.info("Initializing upload API")
        self.storage.ensure_directory()

        if self.config.otp_key_file is not None:
            self.verifier.reload(self.config.otp_key_file)
        else:
            logger.info("No OTP key file configured; uploads do not require a key")

    def reload_credential(self) -> bool:
        """Re-read the OTP key file on a schedule.

        Returns:
            True on success. On failure the error is logged and the
            previously loaded key keeps being used.
        """
        if self.config.otp_key_file is None:
            logger.debug("Key reload requested but no OTP key file is configured")
            return False

        try:
            self.verifier.reload(self.config.otp_key_file)
        except CredentialLoadError as e:
            logger.error(
                f"Failed to reload OTP key, keeping the previous key: {e}",
                exc_info=True,
            )
            return False
        return True

    # ---------------- Maintenance ----------------

    @property
    def is_in_maintenance_mode(self) -> bool:
        return self.gate.is_closed

    def set_maintenance_mode(self, enabled: bool) -> bool:
        return self.gate.set(enabled)

    # ---------------- Admission ----------------

    def check(self, attempt: UploadAttempt) -> Optional[UploadStatus]:
        """Run every check that needs no I/O.

        Returns:
            The rejecting status, or None if the attempt may be stored
        """
        if self.gate.is_closed:
            return UploadStatus.DOWN_FOR_MAINTENANCE

        # A supplied code is ignored while no key is loaded
        if self.verifier.is_armed:
            if attempt.otp_code is None:
                return UploadStatus.MISSING_KEY
            if not self.verifier.verify(attempt.otp_code):
                return UploadStatus.INVALID_KEY

        required_user_agent = self.config.required_user_agent
        if required_user_agent is not None and attempt.user_agent != required_user_agent:
            return UploadStatus.INVALID_USER_AGENT

        if self.config.min_file_size > 0 and attempt.length < self.config.min_file_size:
            return UploadStatus.FILE_TOO_SMALL

        if self.config.max_file_size > 0 and attempt.length > self.config.max_file_size:
            return UploadStatus.FILE_TOO_BIG

        true_file_name, extension = split_extension(attempt.file_name)
        if extension != SENTINEL_EXTENSION:
            return UploadStatus.INVALID_FILE_EXTENSION

        _, true_extension = split_extension(true_file_name)
        if true_extension not in ALLOWED_INNER_EXTENSIONS:
            return UploadStatus.INVALID_FILE_TYPE

        return None

    async def admit(self, attempt: UploadAttempt) -> UploadStatus:
        """Decide on ``attempt`` and store it when every check passes.

        Raises:
            StorageError: The file passed all checks but could not be written
        """
        status = self.check(attempt)
        if status is not None:
            logger.debug(f"Upload of {attempt.file_name!r} rejected: {status.value}")
            return status

        new_file_name = build_stored_file_name(self._timestamp(), attempt.file_name)
        if _INVALID_NAME_CHARACTERS.search(new_file_name):
            return UploadStatus.INVALID_FILE_NAME

        await self.storage.store_file(new_file_name, attempt.file_data)

        notification_logger.info(f"{attempt.file_name} has been uploaded as {new_file_name}!")
        return UploadStatus.SUCCESS
