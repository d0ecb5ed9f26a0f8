from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Query, Request

from app.core.config import Settings, get_settings
from app.core.error_codes import ErrorCode
from app.core.errors import ClientInputError
from app.core.logging_config import get_logger
from app.services.credentials import CredentialProvider
from app.services.listing import BlobLister
from app.services.permissions import PermissionSet, RoutePolicy, read_policy, upload_policy
from app.services.sas import TokenIssuer
from app.services.storage import create_service_client

log = get_logger("api")


@lru_cache(maxsize=1)
def get_credential_provider() -> CredentialProvider:
    return CredentialProvider(client_id=get_settings().azure_client_id)


@lru_cache(maxsize=1)
def get_token_issuer() -> TokenIssuer:
    # Failures are not cached: a missing account or identity is re-checked on the next request.
    settings = get_settings()
    account_name = settings.require_account()
    credential = get_credential_provider().get_credential()
    return TokenIssuer(
        account_name=account_name,
        service_client=create_service_client(settings, credential),
        default_container=settings.default_container,
    )


def get_upload_policy(settings: Settings = Depends(get_settings)) -> RoutePolicy:
    return upload_policy(settings)


def get_read_policy(settings: Settings = Depends(get_settings)) -> RoutePolicy:
    return read_policy(settings)


def get_blob_lister(
    issuer: TokenIssuer = Depends(get_token_issuer),
    policy: RoutePolicy = Depends(get_read_policy),
) -> BlobLister:
    return BlobLister(issuer, policy)


@dataclass(frozen=True)
class TokenRequest:
    container: str
    blob_name: str
    permissions: PermissionSet
    minutes: int


def get_upload_request(
    request: Request,
    file: str | None = Query(default=None),
    container: str | None = Query(default=None),
    permission: str | None = Query(default=None),
    timerange: str | None = Query(default=None),
    policy: RoutePolicy = Depends(get_upload_policy),
    settings: Settings = Depends(get_settings),
) -> TokenRequest:
    log.info(
        "Incoming SAS token request origin=%s referer=%s container=%s file=%s permission=%s timerange=%s",
        request.headers.get("origin"),
        request.headers.get("referer"),
        container,
        file,
        permission,
        timerange,
    )
    if not file:
        raise ClientInputError("Missing required parameter: file", code=ErrorCode.MISSING_PARAMETER)
    return TokenRequest(
        container=container or settings.default_container,
        blob_name=file,
        permissions=policy.resolve_permissions(permission),
        minutes=policy.resolve_minutes(timerange),
    )


AppSettings = Annotated[Settings, Depends(get_settings)]
Issuer = Annotated[TokenIssuer, Depends(get_token_issuer)]
Lister = Annotated[BlobLister, Depends(get_blob_lister)]
# Must be declared ahead of Issuer so bad input is rejected before the identity or the store is touched.
UploadRequest = Annotated[TokenRequest, Depends(get_upload_request)]
