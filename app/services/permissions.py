from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from azure.storage.blob import BlobSasPermissions

from app.core.config import Settings
from app.core.error_codes import ErrorCode
from app.core.errors import ClientInputError


class Permission(str, Enum):
    READ = "r"
    ADD = "a"
    CREATE = "c"
    WRITE = "w"
    DELETE = "d"
    LIST = "l"


# Order the store expects in the signed "sp" field.
CANONICAL_ORDER = "racwdl"


@dataclass(frozen=True)
class PermissionSet:
    permissions: frozenset[Permission]

    @classmethod
    def of(cls, *permissions: Permission) -> PermissionSet:
        return cls(frozenset(permissions))

    @classmethod
    def parse(cls, code: str) -> PermissionSet:
        value = (code or "").strip().lower()
        if not value:
            raise ClientInputError("Invalid parameter: permission must not be empty")
        unknown = sorted({ch for ch in value if ch not in CANONICAL_ORDER})
        if unknown:
            raise ClientInputError(f"Invalid parameter: unknown permission code(s) {''.join(unknown)!r}")
        return cls(frozenset(Permission(ch) for ch in value))

    def to_code(self) -> str:
        return "".join(ch for ch in CANONICAL_ORDER if Permission(ch) in self.permissions)

    def issubset(self, other: PermissionSet) -> bool:
        return self.permissions <= other.permissions

    def to_blob_sas_permissions(self) -> BlobSasPermissions:
        if Permission.LIST in self.permissions:
            raise ClientInputError(
                "Invalid parameter: list permission cannot be granted on a single blob",
                code=ErrorCode.PERMISSION_NOT_ALLOWED,
            )
        return BlobSasPermissions(
            read=Permission.READ in self.permissions,
            add=Permission.ADD in self.permissions,
            create=Permission.CREATE in self.permissions,
            write=Permission.WRITE in self.permissions,
            delete=Permission.DELETE in self.permissions,
        )

    def __str__(self) -> str:
        return self.to_code()


@dataclass(frozen=True)
class RoutePolicy:
    """What a route may hand out: default and widest permissions, and a bounded duration."""

    name: str
    default_permissions: PermissionSet
    allowed_permissions: PermissionSet
    default_minutes: int
    max_minutes: int
    min_minutes: int = 1

    def resolve_permissions(self, code: str | None) -> PermissionSet:
        if code is None or code == "":
            return self.default_permissions
        requested = PermissionSet.parse(code)
        if not requested.issubset(self.allowed_permissions):
            raise ClientInputError(
                f"Permission {requested.to_code()!r} is not allowed on the {self.name} route "
                f"(allowed: {self.allowed_permissions.to_code()!r})",
                code=ErrorCode.PERMISSION_NOT_ALLOWED,
            )
        return requested

    def resolve_minutes(self, value: str | int | None) -> int:
        if value is None or value == "":
            minutes = self.default_minutes
        else:
            try:
                minutes = int(value)
            except (TypeError, ValueError):
                raise ClientInputError("Invalid parameter: timerange must be an integer number of minutes") from None
        return max(self.min_minutes, min(self.max_minutes, minutes))


def upload_policy(settings: Settings) -> RoutePolicy:
    ceiling = max(1, settings.max_token_minutes)
    return RoutePolicy(
        name="upload",
        default_permissions=PermissionSet.of(Permission.WRITE),
        allowed_permissions=PermissionSet.of(Permission.ADD, Permission.CREATE, Permission.WRITE),
        default_minutes=min(settings.upload_token_minutes, ceiling),
        max_minutes=ceiling,
    )


def read_policy(settings: Settings) -> RoutePolicy:
    ceiling = max(1, settings.max_token_minutes)
    return RoutePolicy(
        name="read",
        default_permissions=PermissionSet.of(Permission.READ),
        allowed_permissions=PermissionSet.of(Permission.READ),
        default_minutes=min(settings.read_token_minutes, ceiling),
        max_minutes=ceiling,
    )
