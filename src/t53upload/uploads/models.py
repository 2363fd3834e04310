"""Upload admission data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from t53upload.core.config import Settings


class UploadStatus(str, Enum):
    """Terminal outcome of one upload attempt.

    Declared in the order the admission checks run.
    """

    SUCCESS = "success"
    DOWN_FOR_MAINTENANCE = "down_for_maintenance"
    MISSING_KEY = "missing_key"
    INVALID_KEY = "invalid_key"
    INVALID_USER_AGENT = "invalid_user_agent"
    FILE_TOO_SMALL = "file_too_small"
    FILE_TOO_BIG = "file_too_big"
    INVALID_FILE_EXTENSION = "invalid_file_extension"
    INVALID_FILE_TYPE = "invalid_file_type"
    INVALID_FILE_NAME = "invalid_file_name"

    @property
    def message(self) -> str:
        """Fixed human-readable message returned to the client."""
        return _MESSAGES[self]

    @property
    def http_status(self) -> int:
        if self is UploadStatus.SUCCESS:
            return 200
        if self is UploadStatus.DOWN_FOR_MAINTENANCE:
            return 503
        return 400


_MESSAGES = {
    UploadStatus.SUCCESS: "File Uploaded Successfully!",
    UploadStatus.DOWN_FOR_MAINTENANCE: "Site is down for maintenance.  Please try again later.",
    UploadStatus.MISSING_KEY: "Key Not Found.",
    UploadStatus.INVALID_KEY: "Invalid Key. Check your PC's clock and make sure its set correctly.",
    UploadStatus.INVALID_USER_AGENT: "Invalid User Agent.",
    UploadStatus.FILE_TOO_SMALL: "File is too small.",
    UploadStatus.FILE_TOO_BIG: "File is too big.",
    UploadStatus.INVALID_FILE_EXTENSION: "Invalid File.",
    UploadStatus.INVALID_FILE_TYPE: "Invalid File Type.",
    UploadStatus.INVALID_FILE_NAME: "Invalid File Name.",
}


@dataclass(frozen=True)
class UploadPolicy:
    """Admission policy snapshot.

    ``None`` or non-positive values disable the matching check.
    """

    staging_directory: Path
    required_user_agent: Optional[str] = None
    min_file_size: int = 0
    max_file_size: int = 0
    otp_key_file: Optional[Path] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "UploadPolicy":
        return cls(
            staging_directory=settings.T53_FILE_STAGING_DIRECTORY,
            required_user_agent=settings.T53_UPLOAD_USER_AGENT,
            min_file_size=settings.T53_MIN_FILE_SIZE,
            max_file_size=settings.T53_MAX_FILE_SIZE,
            otp_key_file=settings.T53_OTP_KEY_FILE,
        )


@dataclass
class UploadAttempt:
    """One upload request as handed over by the transport layer."""

    file_name: str
    length: int
    file_data: BinaryIO
    user_agent: Optional[str] = None
    otp_code: Optional[str] = None
