"""
Upload/list orchestration as performed by the browser client.

Flow per file: request a write-only SAS URL from the API, PUT the whole file
straight to the store with it, then refresh the listing (whose URLs are
separate read-only tokens minted by the API).
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlsplit

import httpx

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".svg"}


def is_image(name: str) -> bool:
    path = urlsplit(name).path or name
    return PurePosixPath(path).suffix.lower() in IMAGE_EXTENSIONS


class UploadState(str, Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    TOKEN_REQUESTED = "token_requested"
    TOKEN_RECEIVED = "token_received"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    LIST_REFRESHED = "list_refreshed"
    FAILED = "failed"


class UploadClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None, endpoint: str | None = None):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


@dataclass(frozen=True)
class SelectedFile:
    name: str
    content: bytes

    @property
    def content_type(self) -> str:
        return mimetypes.guess_type(self.name)[0] or "application/octet-stream"


@dataclass(frozen=True)
class ListingEntry:
    name: str
    url: str

    @property
    def is_image(self) -> bool:
        return is_image(self.name)


class UploadSession:
    def __init__(
        self,
        api_url: str,
        *,
        container: str = "upload",
        client: httpx.Client | None = None,
        permission: str = "w",
        timerange: int = 10,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.container = container
        self.permission = permission
        self.timerange = timerange
        self._client = client or httpx.Client(timeout=30.0)
        self.state = UploadState.IDLE
        self.selected: SelectedFile | None = None
        self.sas_url: str | None = None
        self.entries: list[ListingEntry] = []
        self.error: str | None = None

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> UploadSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _fail(self, message: str, status_code: int | None = None, endpoint: str | None = None) -> UploadClientError:
        self.state = UploadState.FAILED
        self.error = message
        return UploadClientError(message, status_code=status_code, endpoint=endpoint)

    def select_file(self, name: str, content: bytes) -> SelectedFile:
        # A new selection never reuses a token issued for a previous file.
        self.selected = SelectedFile(name=name, content=content)
        self.sas_url = None
        self.error = None
        self.state = UploadState.FILE_SELECTED
        return self.selected

    def select_path(self, path: str | Path) -> SelectedFile:
        path = Path(path)
        return self.select_file(path.name, path.read_bytes())

    def request_upload_token(self) -> str:
        if self.selected is None:
            raise UploadClientError("No file selected")

        endpoint = f"{self.api_url}/api/sas"
        params = {
            "file": self.selected.name,
            "permission": self.permission,
            "container": self.container,
            "timerange": str(self.timerange),
        }
        self.state = UploadState.TOKEN_REQUESTED
        try:
            response = self._client.get(endpoint, params=params)
        except httpx.HTTPError as exc:
            raise self._fail(f"Error getting sas token: {exc} - URL: {endpoint}", endpoint=endpoint) from exc

        if not response.is_success:
            raise self._fail(
                f"Error: {response.status_code} {response.reason_phrase} - URL: {response.request.url}",
                status_code=response.status_code,
                endpoint=endpoint,
            )

        try:
            self.sas_url = response.json()["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise self._fail(
                f"Malformed SAS token response from {endpoint}: {exc!r}",
                status_code=response.status_code,
                endpoint=endpoint,
            ) from exc
        self.state = UploadState.TOKEN_RECEIVED
        return self.sas_url

    def upload(self) -> None:
        if self.selected is None or not self.sas_url:
            raise UploadClientError("Upload aborted: no SAS token URL")
        if not self.selected.content:
            raise self._fail("Selected file is empty")

        self.state = UploadState.UPLOADING
        headers = {"x-ms-blob-type": "BlockBlob", "Content-Type": self.selected.content_type}
        try:
            response = self._client.put(self.sas_url, content=self.selected.content, headers=headers)
        except httpx.HTTPError as exc:
            # The token stays in place: it may still be inside its validity window for a retry.
            raise self._fail(f"Upload error: {exc}") from exc

        if not response.is_success:
            raise self._fail(
                f"Upload failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        self.state = UploadState.UPLOADED

    def refresh_listing(self) -> list[ListingEntry]:
        endpoint = f"{self.api_url}/api/list"
        try:
            response = self._client.get(endpoint, params={"container": self.container})
        except httpx.HTTPError as exc:
            raise self._fail(f"Error listing files: {exc} - URL: {endpoint}", endpoint=endpoint) from exc

        if not response.is_success:
            raise self._fail(
                f"Error: {response.status_code} {response.reason_phrase} - URL: {response.request.url}",
                status_code=response.status_code,
                endpoint=endpoint,
            )

        try:
            data = response.json()
            if data.get("entries") is not None:
                entries = [ListingEntry(name=e["name"], url=e["url"]) for e in data["entries"]]
            else:
                entries = [ListingEntry(name=_name_from_url(url), url=url) for url in data.get("list", [])]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise self._fail(
                f"Malformed listing response from {endpoint}: {exc!r}",
                status_code=response.status_code,
                endpoint=endpoint,
            ) from exc
        self.entries = entries
        self.state = UploadState.LIST_REFRESHED
        return self.entries

    def run(self) -> list[ListingEntry]:
        """Token → upload → listing for the selected file."""
        if self.sas_url is None:
            self.request_upload_token()
        self.upload()
        return self.refresh_listing()


def _name_from_url(url: str) -> str:
    return unquote(PurePosixPath(urlsplit(url).path).name)
