import threading

import pytest
from azure.core.credentials import AccessToken
from azure.identity import CredentialUnavailableError

from app.core.errors import CredentialUnavailable
from app.services.credentials import STORAGE_SCOPE, CredentialProvider, default_strategies


class FakeCredential:
    def __init__(self, name: str, available: bool = True):
        self.name = name
        self.available = available
        self.scopes = []

    def get_token(self, *scopes, **kwargs):
        self.scopes.extend(scopes)
        if not self.available:
            raise CredentialUnavailableError(message=f"{self.name} is not available")
        return AccessToken("token", 2_000_000_000)


def _strategy(name: str, available: bool, built: list[str]):
    def factory():
        built.append(name)
        return FakeCredential(name, available)

    return (name, factory)


def test_first_working_strategy_wins_in_order():
    built: list[str] = []
    provider = CredentialProvider(
        strategies=[
            _strategy("explicit", False, built),
            _strategy("platform", True, built),
            _strategy("developer", True, built),
        ]
    )

    credential = provider.get_credential()

    assert credential.name == "platform"
    assert credential.scopes == [STORAGE_SCOPE]
    assert provider.strategy_name == "platform"
    assert built == ["explicit", "platform"]


def test_credential_is_memoized():
    built: list[str] = []
    provider = CredentialProvider(strategies=[_strategy("platform", True, built)])

    first = provider.get_credential()
    second = provider.get_credential()

    assert first is second
    assert built == ["platform"]


def test_all_strategies_failing_raises_credential_unavailable():
    built: list[str] = []
    provider = CredentialProvider(
        strategies=[_strategy("platform", False, built), _strategy("developer", False, built)]
    )

    with pytest.raises(CredentialUnavailable) as excinfo:
        provider.get_credential()

    assert excinfo.value.status_code == 500
    assert "platform" in excinfo.value.details
    assert "developer" in excinfo.value.details


def test_failed_resolution_is_not_cached():
    built: list[str] = []
    state = {"available": False}

    def factory():
        built.append("platform")
        return FakeCredential("platform", state["available"])

    provider = CredentialProvider(strategies=[("platform", factory)])
    with pytest.raises(CredentialUnavailable):
        provider.get_credential()

    state["available"] = True
    assert provider.get_credential().name == "platform"
    assert built == ["platform", "platform"]


def test_concurrent_first_use_resolves_once():
    built: list[str] = []
    provider = CredentialProvider(strategies=[_strategy("platform", True, built)])
    results = []

    threads = [threading.Thread(target=lambda: results.append(provider.get_credential())) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len({id(credential) for credential in results}) == 1
    assert built == ["platform"]


def test_default_strategies_put_explicit_identity_first():
    names = [name for name, _ in default_strategies("abc-123")]
    assert names == ["managed_identity(client_id=abc-123)", "managed_identity", "azure_cli"]
    assert [name for name, _ in default_strategies("")] == ["managed_identity", "azure_cli"]
