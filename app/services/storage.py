"""
Blob service client construction and mapping of store failures onto ApiError.
"""

from __future__ import annotations

from azure.core.credentials import TokenCredential
from azure.core.exceptions import ClientAuthenticationError
from azure.storage.blob import BlobServiceClient

from app.core.config import Settings
from app.core.errors import (
    ApiError,
    CredentialUnavailable,
    DelegationDenied,
    NetworkPolicyBlocked,
    UpstreamFailure,
)

# Returned when the storage firewall (IP / virtual network rules) rejects the caller,
# even though the identity holds every required RBAC role.
NETWORK_ERROR_CODES = {"AuthorizationFailure", "AuthorizationSourceIPMismatch"}

OPERATION_MESSAGES = {
    "delegation_key": "Failed to generate SAS token",
    "list": "Failed to list files",
    "service_properties": "Cannot access storage account",
    "list_containers": "Cannot list containers",
}


def create_service_client(settings: Settings, credential: TokenCredential) -> BlobServiceClient:
    settings.require_account()
    timeout = settings.storage_timeout_seconds
    return BlobServiceClient(
        settings.account_url,
        credential=credential,
        connection_timeout=timeout,
        read_timeout=timeout,
    )


def storage_error_code(exc: BaseException) -> str | None:
    # The SDK sets error_code to a StorageErrorCode member; compare by its wire value.
    code = getattr(exc, "error_code", None)
    if code:
        return str(getattr(code, "value", code))
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers:
        return headers.get("x-ms-error-code")
    return None


def classify_storage_error(exc: BaseException, operation: str) -> ApiError:
    if isinstance(exc, ApiError):
        return exc

    details = str(getattr(exc, "message", None) or exc) or exc.__class__.__name__
    status = getattr(exc, "status_code", None)
    code = storage_error_code(exc)

    if status == 403 and code in NETWORK_ERROR_CODES:
        return NetworkPolicyBlocked(details=details)
    if status == 403:
        if operation == "delegation_key":
            return DelegationDenied(details=details)
        return UpstreamFailure(
            f"{OPERATION_MESSAGES.get(operation, 'Storage request failed')}: identity lacks data access "
            "(requires Storage Blob Data Contributor)",
            details=details,
        )
    if isinstance(exc, ClientAuthenticationError):
        return CredentialUnavailable(details=details)
    return UpstreamFailure(OPERATION_MESSAGES.get(operation, "Storage request failed"), details=details)
