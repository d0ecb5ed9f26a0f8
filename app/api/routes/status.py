from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.api.deps import AppSettings
from app.schemas.status import RequestInfo, StatusResponse

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status", response_model=StatusResponse)
def get_status(request: Request, settings: AppSettings) -> StatusResponse:
    """Diagnostics only; never echoes authorization headers."""
    headers = {key: value for key, value in request.headers.items() if "authorization" not in key.lower()}
    return StatusResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.app_env,
        storage_account=settings.azure_storage_account_name or "not configured",
        frontend_url=settings.allowed_origins or "not configured",
        request=RequestInfo(method=request.method, url=str(request.url), headers=headers),
    )
