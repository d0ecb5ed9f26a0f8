from app.core.error_codes import ErrorCode


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: str | None = None):
        self.status_code = status_code
        self.code = str(code)
        self.message = message
        self.details = details
        super().__init__(message)

    def to_content(self) -> dict[str, str]:
        content = {"error": self.message}
        if self.details:
            content["details"] = self.details
        return content


class ClientInputError(ApiError):
    def __init__(self, message: str, code: str = ErrorCode.INVALID_REQUEST):
        super().__init__(status_code=400, code=code, message=message)


class ConfigurationError(ApiError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(status_code=500, code=ErrorCode.SERVER_MISCONFIGURED, message=message, details=details)


class CredentialUnavailable(ApiError):
    def __init__(self, message: str = "No Azure identity could be resolved", details: str | None = None):
        super().__init__(status_code=500, code=ErrorCode.CREDENTIAL_UNAVAILABLE, message=message, details=details)


class DelegationDenied(ApiError):
    """The identity is authenticated but may not request user delegation keys."""

    missing_role = "Storage Blob Delegator"

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(
            status_code=500,
            code=ErrorCode.DELEGATION_DENIED,
            message=message or f"Missing required role: {self.missing_role}",
            details=details,
        )


class NetworkPolicyBlocked(ApiError):
    """The storage firewall rejected the caller's network, regardless of RBAC roles."""

    def __init__(self, message: str | None = None, details: str | None = None):
        super().__init__(
            status_code=500,
            code=ErrorCode.NETWORK_POLICY_BLOCKED,
            message=message
            or "Storage account network rules blocked the request; check the firewall allow list for this caller",
            details=details,
        )


class UpstreamFailure(ApiError):
    def __init__(self, message: str, details: str | None = None):
        super().__init__(status_code=500, code=ErrorCode.UPSTREAM_FAILURE, message=message, details=details)
