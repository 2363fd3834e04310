"""Health check endpoint for the upload server."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        dict: Health status with service name, version and whether the
        maintenance window is active
    """
    settings = request.app.state.settings
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "maintenance": request.app.state.upload_api.is_in_maintenance_mode,
    }
