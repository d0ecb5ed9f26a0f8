import base64
import os
from datetime import datetime
from urllib.parse import parse_qs, urlsplit

# Unit tests never talk to Azure; keep startup verification off before the app is imported.
os.environ["VERIFY_ON_STARTUP"] = "false"
os.environ["AZURE_STORAGE_ACCOUNT_NAME"] = "devaccount"

import pytest
from azure.core.exceptions import HttpResponseError
from azure.storage.blob import BlobClient, StorageErrorCode, UserDelegationKey
from httpx import Client

from app.core.config import Settings


RUN_INTEGRATION = os.getenv("RUN_INTEGRATION") == "1"
BASE_URL = os.getenv("BASE_URL", "http://localhost:3000")

ACCOUNT_NAME = "devaccount"
ACCOUNT_URL = f"https://{ACCOUNT_NAME}.blob.core.windows.net"
SAS_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@pytest.fixture(scope="session")
def base_url() -> str:
    return BASE_URL


@pytest.fixture(scope="session")
def client(base_url: str):
    with Client(base_url=base_url, timeout=20.0) as c:
        yield c


@pytest.fixture(scope="session")
def integration_enabled() -> bool:
    return RUN_INTEGRATION


def make_delegation_key() -> UserDelegationKey:
    key = UserDelegationKey()
    key.signed_oid = "11111111-1111-1111-1111-111111111111"
    key.signed_tid = "22222222-2222-2222-2222-222222222222"
    key.signed_start = "2026-01-01T00:00:00Z"
    key.signed_expiry = "2026-01-01T01:00:00Z"
    key.signed_service = "b"
    key.signed_version = "2021-08-06"
    key.value = base64.b64encode(b"k" * 32).decode("utf-8")
    return key


def storage_error(status: int, code: str, message: str = "This request is not authorized") -> HttpResponseError:
    """Shaped like the SDK's own errors: a 403 is a plain HttpResponseError whose error_code is a StorageErrorCode."""
    exc = HttpResponseError(message=message)
    exc.status_code = status
    try:
        exc.error_code = StorageErrorCode(code)
    except ValueError:
        exc.error_code = code
    return exc


class _Blob:
    def __init__(self, name: str):
        self.name = name


class FakeContainerClient:
    def __init__(self, service: "FakeServiceClient", container: str):
        self._service = service
        self.container = container

    def list_blobs(self, results_per_page=None):
        self._service.list_calls.append((self.container, results_per_page))
        if self._service.list_error is not None:
            raise self._service.list_error
        return iter([_Blob(name) for name in self._service.blobs.get(self.container, [])])


class FakeServiceClient:
    """Stands in for BlobServiceClient; signing still goes through the real SDK routine."""

    def __init__(self, blobs=None, key_error=None, list_error=None, properties_error=None, containers_error=None):
        self.blobs = blobs or {}
        self.key_error = key_error
        self.list_error = list_error
        self.properties_error = properties_error
        self.containers_error = containers_error
        self.delegation_calls = []
        self.list_calls = []

    def get_user_delegation_key(self, key_start_time, key_expiry_time, **kwargs):
        self.delegation_calls.append((key_start_time, key_expiry_time))
        if self.key_error is not None:
            raise self.key_error
        return make_delegation_key()

    def get_blob_client(self, container, blob):
        return BlobClient(ACCOUNT_URL, container_name=container, blob_name=blob)

    def get_container_client(self, container):
        return FakeContainerClient(self, container)

    def get_service_properties(self):
        if self.properties_error is not None:
            raise self.properties_error
        return {}

    def list_containers(self, name_starts_with=None):
        if self.containers_error is not None:
            raise self.containers_error
        return iter([name for name in self.blobs if not name_starts_with or name.startswith(name_starts_with)])


@pytest.fixture
def fake_service() -> FakeServiceClient:
    return FakeServiceClient(blobs={"upload": ["cat.png", "notes.txt"]})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        azure_storage_account_name=ACCOUNT_NAME,
        azure_client_id="",
        allowed_origins="",
        upload_token_minutes=10,
        read_token_minutes=60,
        max_token_minutes=60,
        verify_on_startup=False,
    )


def sas_query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def sas_times(params: dict[str, str]) -> tuple[datetime, datetime]:
    return (
        datetime.strptime(params["st"], SAS_TIME_FORMAT),
        datetime.strptime(params["se"], SAS_TIME_FORMAT),
    )
