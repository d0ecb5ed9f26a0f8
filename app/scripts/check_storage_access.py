#!/usr/bin/env python3
"""
Validate that the current identity can issue user delegation SAS tokens.

Runs the same checks the API performs at startup.

Required environment variables:
    AZURE_STORAGE_ACCOUNT_NAME
    AZURE_CLIENT_ID (optional, user-assigned managed identity)

Usage:
    python -m app.scripts.check_storage_access
"""

from __future__ import annotations

import argparse
import sys

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.services.credentials import CredentialProvider
from app.services.verify import REQUIRED_ROLES, verify_configured_account


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check storage access for the configured account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--attempts", type=int, default=None, help="Override retry attempts per check")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = get_settings()
    if args.attempts is not None:
        settings = settings.model_copy(update={"verify_attempts": args.attempts})

    if not settings.azure_storage_account_name:
        print("Error: AZURE_STORAGE_ACCOUNT_NAME environment variable is required", file=sys.stderr)
        print("  export AZURE_STORAGE_ACCOUNT_NAME=<your-storage-account-name>", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    print(f"Storage account: {settings.azure_storage_account_name}")
    print(f"Client ID: {settings.azure_client_id or '(system-assigned identity or Azure CLI)'}")

    provider = CredentialProvider(client_id=settings.azure_client_id)
    result = verify_configured_account(settings, provider)

    if result.success:
        print(f"\nAll checks passed using {provider.strategy_name}. Storage access is properly configured.")
        return 0

    print(f"\nVerification failed: {result.message}", file=sys.stderr)
    if result.details:
        print(f"  Details: {result.details}", file=sys.stderr)
    print("\nRequired Azure RBAC roles:")
    for role in REQUIRED_ROLES:
        print(f"  - {role}")
    print("\nTo fix:")
    print("  1. Assign the roles to the identity running this check")
    print("  2. Wait 5-10 minutes for RBAC propagation")
    print("  3. If roles are already assigned, check the account's network rules for this machine's IP")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
