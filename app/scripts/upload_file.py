#!/usr/bin/env python3
"""
Upload a local file through the SAS API and print the refreshed container listing.

Usage:
    python -m app.scripts.upload_file \
        --api-url http://localhost:3000 \
        --container upload \
        --file ./photo.png
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from app.client.session import UploadClientError, UploadSession


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload a file directly to blob storage using a short-lived SAS URL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--api-url",
        default=os.getenv("API_URL", "http://localhost:3000"),
        help="API base URL (default: $API_URL or http://localhost:3000)",
    )
    parser.add_argument("--container", default="upload", help="Target container (default: upload)")
    parser.add_argument("--file", required=True, help="Path to the file to upload")
    parser.add_argument(
        "--timerange",
        type=int,
        default=10,
        help="Requested token lifetime in minutes; the server clamps it (default: 10)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    path = Path(args.file).expanduser().resolve()
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    with UploadSession(args.api_url, container=args.container, timerange=args.timerange) as session:
        selected = session.select_path(path)
        print(f"Selected {selected.name} ({len(selected.content):,} bytes)")

        try:
            session.request_upload_token()
            print("SAS token received")
            session.upload()
            print("Successfully finished upload")
            entries = session.refresh_listing()
        except UploadClientError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(f"\nContainer '{args.container}' ({len(entries)} files):")
    for entry in entries:
        kind = "image" if entry.is_image else "file"
        print(f"  [{kind}] {entry.name}")
        print(f"          {entry.url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
