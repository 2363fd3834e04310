"""Upload API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile
from fastapi.responses import PlainTextResponse

from t53upload.core.exceptions import StorageError
from t53upload.core.logging import upload_name_context
from t53upload.uploads.models import UploadAttempt
from t53upload.uploads.pipeline import UploadApi

router = APIRouter(tags=["upload"])
logger = logging.getLogger(__name__)


def get_upload_api(request: Request) -> UploadApi:
    """Return the UploadApi created by the application factory."""
    return request.app.state.upload_api


def _get_file_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    file.file.seek(0, 2)  # Seek to end
    size_bytes = file.file.tell()
    file.file.seek(0)  # Reset to beginning
    return size_bytes


@router.post("/upload")
# Existing clients post to the capitalised path
@router.post("/Upload", include_in_schema=False)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    otp: Optional[str] = Form(None),
    user_agent: Optional[str] = Header(None),
    api: UploadApi = Depends(get_upload_api),
) -> PlainTextResponse:
    """Upload a file; the body is the outcome message."""
    if file is None:
        return PlainTextResponse("File is null", status_code=400)

    logger.debug(f"Request User Agent: {user_agent or '[null]'}")

    file_name = file.filename or ""
    upload_name_context.set(file_name)

    attempt = UploadAttempt(
        file_name=file_name,
        length=_get_file_size(file),
        file_data=file.file,
        user_agent=user_agent,
        otp_code=otp,
    )

    try:
        status = await api.admit(attempt)
    except StorageError as e:
        logger.error(f"Failed to store file: {e}", exc_info=True)
        return PlainTextResponse("Failed to store file.", status_code=500)
    finally:
        await file.close()

    return PlainTextResponse(status.message, status_code=status.http_status)


@router.get("/upload")
@router.get("/Upload", include_in_schema=False)
async def upload_page() -> PlainTextResponse:
    """Uploads are POST only."""
    return PlainTextResponse("Not Found", status_code=404)

