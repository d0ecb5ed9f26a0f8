from __future__ import annotations

from dataclasses import dataclass

from azure.core.exceptions import AzureError

from app.core.logging_config import get_logger
from app.services.permissions import RoutePolicy
from app.services.sas import TokenIssuer, ValidityWindow
from app.services.storage import classify_storage_error

PAGE_SIZE = 20

log = get_logger("listing")


@dataclass(frozen=True)
class ListingEntry:
    name: str
    url: str


class BlobLister:
    """Enumerates a container and re-signs every blob with a read-only token."""

    def __init__(self, issuer: TokenIssuer, policy: RoutePolicy) -> None:
        self.issuer = issuer
        self.policy = policy

    def blob_names(self, container: str) -> list[str]:
        container_client = self.issuer.service_client.get_container_client(container)
        try:
            return [blob.name for blob in container_client.list_blobs(results_per_page=PAGE_SIZE)]
        except AzureError as exc:
            error = classify_storage_error(exc, "list")
            log.error(
                "Listing failed account=%s container=%s code=%s error=%s",
                self.issuer.account_name,
                container,
                error.code,
                error.details,
            )
            raise error from exc

    def list_entries(self, container: str | None = None) -> list[ListingEntry]:
        container = container or self.issuer.default_container
        names = self.blob_names(container)
        if not names:
            return []

        permissions = self.policy.default_permissions
        window = ValidityWindow.from_now(self.policy.default_minutes)
        key = self.issuer.delegation_key(
            window,
            context={"container": container, "permission": permissions.to_code(), "minutes": window.minutes},
        )
        entries = [
            ListingEntry(name=name, url=self.issuer.sign(container, name, permissions, window, key).url)
            for name in names
        ]
        log.info("Retrieved file list container=%s count=%s", container, len(entries))
        return entries
