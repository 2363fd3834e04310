"""Custom exceptions for the upload server."""


class UploadServerException(Exception):
    """Base exception for the upload server."""
    pass


class CredentialLoadError(UploadServerException):
    """Exception raised when the OTP key file cannot be loaded."""
    pass


class StorageError(UploadServerException):
    """Exception raised when writing to the staging directory fails."""
    pass
