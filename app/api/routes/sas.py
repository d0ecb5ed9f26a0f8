from fastapi import APIRouter

from app.api.deps import Issuer, UploadRequest
from app.schemas.sas import SasResponse

router = APIRouter(prefix="/api", tags=["sas"])


@router.get("/sas", response_model=SasResponse)
def get_sas_token(token_request: UploadRequest, issuer: Issuer) -> SasResponse:
    signed = issuer.issue_token(
        token_request.container,
        token_request.blob_name,
        token_request.permissions,
        token_request.minutes,
    )
    return SasResponse(url=signed.url)
