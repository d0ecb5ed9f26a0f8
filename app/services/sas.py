"""
User delegation SAS issuance.

A token is derived from a delegation key that the store hands out to the
process identity for a bounded window; no account key is ever used. Both the
start and the expiry are always signed into the token so the account's SAS
expiration policy can be enforced by the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from azure.core.exceptions import AzureError
from azure.storage.blob import UserDelegationKey, generate_blob_sas

from app.core.error_codes import ErrorCode
from app.core.errors import ClientInputError
from app.core.logging_config import get_logger
from app.services.permissions import PermissionSet
from app.services.storage import classify_storage_error

log = get_logger("sas")


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class ValidityWindow:
    starts_on: datetime
    expires_on: datetime

    def __post_init__(self) -> None:
        if self.expires_on <= self.starts_on:
            raise ValueError("expires_on must be after starts_on")

    @classmethod
    def from_now(cls, minutes: int, *, now: datetime | None = None) -> ValidityWindow:
        starts_on = now or now_utc()
        return cls(starts_on=starts_on, expires_on=starts_on + timedelta(minutes=minutes))

    @property
    def minutes(self) -> int:
        return int((self.expires_on - self.starts_on).total_seconds() // 60)


@dataclass(frozen=True)
class SignedUrl:
    url: str
    blob_url: str
    container: str
    blob_name: str
    permissions: PermissionSet
    window: ValidityWindow


class TokenIssuer:
    """Issues blob-scoped SAS URLs; keeps no record of what it issued."""

    def __init__(self, account_name: str, service_client: Any, default_container: str = "upload") -> None:
        self.account_name = account_name
        self.service_client = service_client
        self.default_container = default_container

    def delegation_key(self, window: ValidityWindow, *, context: dict[str, Any] | None = None) -> UserDelegationKey:
        log.info(
            "Requesting user delegation key account=%s starts_on=%s expires_on=%s",
            self.account_name,
            window.starts_on.isoformat(),
            window.expires_on.isoformat(),
        )
        try:
            return self.service_client.get_user_delegation_key(window.starts_on, window.expires_on)
        except AzureError as exc:
            error = classify_storage_error(exc, "delegation_key")
            log.error(
                "User delegation key request failed account=%s code=%s error=%s context=%s",
                self.account_name,
                error.code,
                error.details,
                context or {},
            )
            raise error from exc

    def sign(
        self,
        container: str,
        blob_name: str,
        permissions: PermissionSet,
        window: ValidityWindow,
        key: UserDelegationKey,
    ) -> SignedUrl:
        token = generate_blob_sas(
            account_name=self.account_name,
            container_name=container,
            blob_name=blob_name,
            user_delegation_key=key,
            permission=permissions.to_blob_sas_permissions(),
            start=window.starts_on,
            expiry=window.expires_on,
        )
        blob_url = self.service_client.get_blob_client(container, blob_name).url
        return SignedUrl(
            url=f"{blob_url}?{token}",
            blob_url=blob_url,
            container=container,
            blob_name=blob_name,
            permissions=permissions,
            window=window,
        )

    def issue_token(
        self,
        container: str | None,
        blob_name: str | None,
        permissions: PermissionSet,
        duration_minutes: int,
    ) -> SignedUrl:
        if not blob_name:
            raise ClientInputError("Missing required parameter: file", code=ErrorCode.MISSING_PARAMETER)
        if int(duration_minutes) < 1:
            raise ClientInputError(f"Token duration must be at least 1 minute, got {duration_minutes}")
        container = container or self.default_container

        window = ValidityWindow.from_now(duration_minutes)
        log.info(
            "Token valid from %s and expires at %s (%s minutes from now)",
            window.starts_on.isoformat(),
            window.expires_on.isoformat(),
            duration_minutes,
        )
        context = {
            "container": container,
            "blob": blob_name,
            "permission": permissions.to_code(),
            "minutes": duration_minutes,
        }
        key = self.delegation_key(window, context=context)
        signed = self.sign(container, blob_name, permissions, window, key)

        log.info(
            "Generated SAS token for %s/%s blob_url=%s permission=%s sas_url_length=%s",
            container,
            blob_name,
            signed.blob_url,
            permissions.to_code(),
            len(signed.url),
        )
        return signed
