"""Upload admission: outcome taxonomy, OTP verification, maintenance gate
and the pipeline that ties them together.
"""

from t53upload.uploads.maintenance import MaintenanceGate
from t53upload.uploads.models import UploadAttempt, UploadPolicy, UploadStatus
from t53upload.uploads.otp import OtpVerifier
from t53upload.uploads.pipeline import UploadApi

__all__ = [
    "MaintenanceGate",
    "OtpVerifier",
    "UploadApi",
    "UploadAttempt",
    "UploadPolicy",
    "UploadStatus",
]
