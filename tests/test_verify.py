import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError

from app.core.errors import CredentialUnavailable
from app.core.retry import RetryPolicy
from app.services.verify import verify_configured_account, verify_storage_access
from conftest import FakeServiceClient, storage_error


def test_retry_policy_retries_until_success():
    calls = {"n": 0}
    sleeps: list[float] = []

    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ServiceRequestError("temporary")
        return "ok"

    policy = RetryPolicy(attempts=3, delay_seconds=0.5, retry_on=(ServiceRequestError,))
    assert policy.call(flaky, sleep=sleeps.append) == "ok"
    assert sleeps == [0.5, 0.5]


def test_retry_policy_reraises_after_last_attempt():
    sleeps: list[float] = []

    def broken():
        raise ServiceRequestError("down")

    with pytest.raises(ServiceRequestError):
        RetryPolicy(attempts=2, delay_seconds=1.0, retry_on=(ServiceRequestError,)).call(broken, sleep=sleeps.append)
    assert sleeps == [1.0]


def test_retry_policy_does_not_retry_other_errors():
    sleeps: list[float] = []

    def wrong():
        raise KeyError("bug")

    with pytest.raises(KeyError):
        RetryPolicy(attempts=5, retry_on=(ServiceRequestError,)).call(wrong, sleep=sleeps.append)
    assert sleeps == []


def test_retry_policy_always_makes_at_least_one_attempt():
    sleeps: list[float] = []
    assert RetryPolicy(attempts=0).call(lambda: "once", sleep=sleeps.append) == "once"
    assert sleeps == []


def test_verify_succeeds_when_all_probes_pass():
    service = FakeServiceClient(blobs={"upload": []})
    result = verify_storage_access(service, retry=RetryPolicy(attempts=1), sleep=lambda _: None)

    assert result.success
    assert result.checks == {"service_properties": True, "delegation_key": True, "list_containers": True}
    assert len(service.delegation_calls) == 1


def test_verify_names_missing_delegator_role():
    service = FakeServiceClient(key_error=storage_error(403, "AuthorizationPermissionMismatch"))
    sleeps: list[float] = []
    result = verify_storage_access(
        service,
        retry=RetryPolicy(attempts=3, delay_seconds=2.0, retry_on=(HttpResponseError,)),
        sleep=sleeps.append,
    )

    assert not result.success
    assert result.message == "Missing required role: Storage Blob Delegator"
    assert result.checks == {"service_properties": True, "delegation_key": False}
    assert len(service.delegation_calls) == 3
    assert sleeps == [2.0, 2.0]


def test_verify_names_missing_data_contributor_role():
    service = FakeServiceClient(containers_error=storage_error(403, "AuthorizationPermissionMismatch"))
    result = verify_storage_access(service, retry=RetryPolicy(attempts=1), sleep=lambda _: None)

    assert not result.success
    assert result.message == "Missing required role: Storage Blob Data Contributor"


def test_verify_reports_network_rules_separately_from_roles():
    service = FakeServiceClient(properties_error=storage_error(403, "AuthorizationFailure"))
    result = verify_storage_access(service, retry=RetryPolicy(attempts=1), sleep=lambda _: None)

    assert not result.success
    assert "network" in result.message.lower()
    assert "role" not in result.message.lower()
    assert result.checks == {"service_properties": False}


def test_verify_configured_account_reports_missing_identity(settings):
    class NoIdentity:
        def get_credential(self):
            raise CredentialUnavailable(details="managed_identity: unavailable; azure_cli: not logged in")

    result = verify_configured_account(settings, NoIdentity(), sleep=lambda _: None)

    assert not result.success
    assert result.message == "No Azure identity could be resolved"
    assert "azure_cli" in result.details


def test_verify_configured_account_requires_account(settings):
    unconfigured = settings.model_copy(update={"azure_storage_account_name": ""})

    class Unused:
        def get_credential(self):
            raise AssertionError("identity must not be resolved without an account")

    result = verify_configured_account(unconfigured, Unused(), sleep=lambda _: None)

    assert not result.success
    assert "AZURE_STORAGE_ACCOUNT_NAME" in result.message


def test_verify_firewall_on_delegation_key_is_not_a_missing_role():
    service = FakeServiceClient(key_error=storage_error(403, "AuthorizationSourceIPMismatch"))
    result = verify_storage_access(service, retry=RetryPolicy(attempts=1), sleep=lambda _: None)

    assert not result.success
    assert "Storage Blob Delegator" not in result.message
    assert "network" in result.message.lower()
    assert result.checks == {"service_properties": True, "delegation_key": False}
