"""
Identity resolution for storage calls.

Strategies are tried in order and the first one that can actually mint a
storage token is kept for the lifetime of the process. The azure-identity
credential it returns refreshes its own tokens, so nothing here ever
invalidates the cached handle.
"""

from __future__ import annotations

import threading
from typing import Callable

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError
from azure.identity import AzureCliCredential, ManagedIdentityCredential

from app.core.errors import CredentialUnavailable
from app.core.logging_config import get_logger

STORAGE_SCOPE = "https://storage.azure.com/.default"

log = get_logger("credentials")

Strategy = tuple[str, Callable[[], TokenCredential]]


def default_strategies(client_id: str = "") -> list[Strategy]:
    strategies: list[Strategy] = []
    if client_id:
        strategies.append(
            (f"managed_identity(client_id={client_id})", lambda: ManagedIdentityCredential(client_id=client_id))
        )
    strategies.append(("managed_identity", ManagedIdentityCredential))
    strategies.append(("azure_cli", AzureCliCredential))
    return strategies


class CredentialProvider:
    def __init__(self, client_id: str = "", strategies: list[Strategy] | None = None) -> None:
        self._strategies = strategies if strategies is not None else default_strategies(client_id)
        self._credential: TokenCredential | None = None
        self._strategy_name: str | None = None
        self._lock = threading.Lock()

    @property
    def strategy_name(self) -> str | None:
        return self._strategy_name

    def get_credential(self) -> TokenCredential:
        if self._credential is not None:
            return self._credential

        with self._lock:
            if self._credential is None:
                self._credential, self._strategy_name = self._resolve()
        return self._credential

    def _resolve(self) -> tuple[TokenCredential, str]:
        failures: list[str] = []
        for name, factory in self._strategies:
            try:
                credential = factory()
                credential.get_token(STORAGE_SCOPE)
            except AzureError as exc:
                log.info("Credential strategy %s unavailable: %s", name, exc)
                failures.append(f"{name}: {exc}")
                continue
            log.info("Using credential strategy %s", name)
            return credential, name

        raise CredentialUnavailable(details="; ".join(failures) or "no credential strategies configured")
