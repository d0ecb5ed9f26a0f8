class ErrorCode:
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_PARAMETER = "MISSING_PARAMETER"
    PERMISSION_NOT_ALLOWED = "PERMISSION_NOT_ALLOWED"

    SERVER_MISCONFIGURED = "SERVER_MISCONFIGURED"
    CREDENTIAL_UNAVAILABLE = "CREDENTIAL_UNAVAILABLE"
    DELEGATION_DENIED = "DELEGATION_DENIED"
    NETWORK_POLICY_BLOCKED = "NETWORK_POLICY_BLOCKED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
