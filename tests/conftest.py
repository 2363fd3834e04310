"""Pytest configuration and shared fixtures."""

import base64
import io
from pathlib import Path

import pytest

from t53upload.uploads.maintenance import MaintenanceGate
from t53upload.uploads.models import UploadAttempt, UploadPolicy
from t53upload.uploads.otp import OtpVerifier, build_totp
from t53upload.uploads.pipeline import UploadApi

ZIP_EXTENSION = ".zip.bsat53"
MD_EXTENSION = ".md.bsat53"

# 15 seconds into a 30 second step, so adjacent steps are exactly +/- 30s away
FIXED_NOW = 1_700_000_025
FIXED_TIMESTAMP = 638612345678901234

RAW_KEY = b"0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    """A key file holding the base64 encoding of RAW_KEY."""
    path = tmp_path / "otp.key"
    path.write_text(base64.b64encode(RAW_KEY).decode("ascii"))
    return path


@pytest.fixture
def totp():
    """Independent generator sharing RAW_KEY, used to mint client codes."""
    return build_totp(RAW_KEY)


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    return tmp_path / "t53files"


@pytest.fixture
def make_api(staging_dir: Path):
    """Build an initialised UploadApi with a fixed clock and timestamp."""

    def _make_api(**policy_overrides) -> UploadApi:
        policy = UploadPolicy(staging_directory=staging_dir, **policy_overrides)
        api = UploadApi(
            policy,
            verifier=OtpVerifier(clock=lambda: FIXED_NOW),
            gate=MaintenanceGate(),
            timestamp=lambda: FIXED_TIMESTAMP,
        )
        api.init()
        return api

    return _make_api


def make_attempt(
    file_name: str,
    contents: bytes = b"123",
    user_agent: str | None = None,
    otp_code: str | None = None,
    length: int | None = None,
) -> UploadAttempt:
    return UploadAttempt(
        file_name=file_name,
        length=len(contents) if length is None else length,
        file_data=io.BytesIO(contents),
        user_agent=user_agent,
        otp_code=otp_code,
    )
