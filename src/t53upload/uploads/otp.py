"""Time-based one-time password verification."""

import base64
import binascii
import hashlib
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

import pyotp

from t53upload.core.exceptions import CredentialLoadError

logger = logging.getLogger(__name__)

OTP_STEP_SECONDS = 30
OTP_DIGITS = 8
# Steps accepted on either side of the current one
OTP_VERIFICATION_WINDOW = 1

TimeInput = Union[int, float, datetime]


def read_key_file(key_file: Path) -> bytes:
    """Read and base64-decode the raw key bytes stored in ``key_file``.

    Raises:
        CredentialLoadError: File unreadable, not valid base64, or empty
    """
    try:
        encoded = key_file.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise CredentialLoadError(f"Unable to read OTP key file {key_file}: {e}") from e

    try:
        key = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CredentialLoadError(f"OTP key file {key_file} is not valid base64") from e

    if not key:
        raise CredentialLoadError(f"OTP key file {key_file} is empty")

    return key


def build_totp(key: bytes) -> pyotp.TOTP:
    """Create the generator used for both producing and checking codes."""
    secret = base64.b32encode(key).decode("ascii")
    return pyotp.TOTP(
        secret,
        digits=OTP_DIGITS,
        digest=hashlib.sha512,
        interval=OTP_STEP_SECONDS,
    )


class OtpVerifier:
    """Holds the shared TOTP secret.

    Disabled until the first successful :meth:`reload`, armed afterwards.
    A reload publishes a new generator with one assignment so readers
    never see a half-updated secret.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._totp: Optional[pyotp.TOTP] = None
        self._clock = clock
        self._reload_lock = threading.Lock()

    @property
    def is_armed(self) -> bool:
        return self._totp is not None

    def reload(self, key_file: Path) -> None:
        """Load (or replace) the secret from ``key_file``.

        Raises:
            CredentialLoadError: The key could not be loaded; the previous
                secret, if any, stays in place.
        """
        with self._reload_lock:
            totp = build_totp(read_key_file(key_file))
            was_armed = self.is_armed
            self._totp = totp

        logger.info(
            "OTP key reloaded" if was_armed else "OTP key loaded",
            extra={"key_file": str(key_file)},
        )

    def verify(self, code: str, for_time: Optional[TimeInput] = None) -> bool:
        """Check ``code`` against the current step and its neighbours."""
        totp = self._totp
        if totp is None:
            raise RuntimeError("OTP verifier is disabled; no key has been loaded")

        if for_time is None:
            for_time = self._clock()
        return totp.verify(code, for_time=for_time, valid_window=OTP_VERIFICATION_WINDOW)

    def code_at(self, for_time: TimeInput) -> str:
        totp = self._totp
        if totp is None:
            raise RuntimeError("OTP verifier is disabled; no key has been loaded")
        return totp.at(for_time)
