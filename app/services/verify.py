"""
Startup self-check: can the process identity do what the API needs?

Three probes, in order, each under a bounded retry (role assignments can take
several minutes to propagate):
  1. read account service properties
  2. obtain a user delegation key (Storage Blob Delegator)
  3. enumerate containers (Storage Blob Data Contributor)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable

from azure.core.exceptions import AzureError

from app.core.config import Settings
from app.core.errors import ApiError, NetworkPolicyBlocked
from app.core.logging_config import get_logger
from app.core.retry import RetryPolicy
from app.services.credentials import CredentialProvider
from app.services.sas import now_utc
from app.services.storage import classify_storage_error, create_service_client

REQUIRED_ROLES = ("Storage Blob Data Contributor", "Storage Blob Delegator")

log = get_logger("verify")


@dataclass
class VerificationResult:
    success: bool
    message: str
    details: str | None = None
    checks: dict[str, bool] = field(default_factory=dict)


def _probe_failure_message(error: ApiError, fallback: str) -> str:
    if isinstance(error, NetworkPolicyBlocked):
        return error.message
    return fallback


def verify_storage_access(
    service_client: Any,
    *,
    container_prefix: str = "upload",
    retry: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> VerificationResult:
    retry = retry or RetryPolicy(retry_on=(AzureError,))
    checks: dict[str, bool] = {}

    def _delegation_key() -> Any:
        starts_on = now_utc()
        return service_client.get_user_delegation_key(starts_on, starts_on + timedelta(minutes=10))

    def _list_containers() -> Any:
        return next(iter(service_client.list_containers(name_starts_with=container_prefix)), None)

    probes = [
        (
            "service_properties",
            service_client.get_service_properties,
            "Cannot access storage account. Check if AZURE_STORAGE_ACCOUNT_NAME is correct.",
        ),
        ("delegation_key", _delegation_key, "Missing required role: Storage Blob Delegator"),
        ("list_containers", _list_containers, "Missing required role: Storage Blob Data Contributor"),
    ]

    for name, fn, failure_message in probes:
        log.info("Verifying storage access: %s", name)
        try:
            retry.call(fn, label=name, sleep=sleep)
        except AzureError as exc:
            checks[name] = False
            error = classify_storage_error(exc, name)
            log.error("Storage access check %s failed: %s", name, error.details)
            return VerificationResult(
                success=False,
                message=_probe_failure_message(error, failure_message),
                details=error.details,
                checks=checks,
            )
        checks[name] = True
        log.info("Storage access check %s: OK", name)

    return VerificationResult(
        success=True,
        message="All required storage permissions are configured correctly",
        checks=checks,
    )


def verify_configured_account(
    settings: Settings,
    credential_provider: CredentialProvider,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> VerificationResult:
    """Resolve the identity, build a client and run the probes with the configured retry policy."""
    log.info("Verifying storage permissions for account: %s", settings.azure_storage_account_name)
    try:
        settings.require_account()
        credential = credential_provider.get_credential()
    except ApiError as exc:
        return VerificationResult(success=False, message=exc.message, details=exc.details)

    service_client = create_service_client(settings, credential)
    retry = RetryPolicy(
        attempts=settings.verify_attempts,
        delay_seconds=settings.verify_delay_seconds,
        retry_on=(AzureError,),
    )
    return verify_storage_access(
        service_client,
        container_prefix=settings.default_container,
        retry=retry,
        sleep=sleep,
    )


def log_verification_failure(result: VerificationResult) -> None:
    log.error("Storage permission verification failed!")
    log.error("  %s", result.message)
    if result.details:
        log.error("  Details: %s", result.details)
    log.error("Required Azure RBAC roles: %s", ", ".join(REQUIRED_ROLES))
    log.error("Assign the roles to the API identity, or wait 5-10 minutes if they were just assigned.")
    log.error("If the roles are present, check the storage account network rules for this caller.")
