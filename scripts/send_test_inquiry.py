#!/usr/bin/env python3
"""
Dev helper: post a sample contact-form inquiry to a running backend.

Usage
-----
# Basic — a valid inquiry to localhost:3000
python scripts/send_test_inquiry.py

# Custom fields
python scripts/send_test_inquiry.py --name "Zhang Wei" --email zhang@example.com \\
    --phone "+86 138 0000 0000" --message "Interested in domain X"

# Fill the honeypot field to check the spam path
python scripts/send_test_inquiry.py --honeypot bot

# Pretend to be the production site (exercises the CORS allow-list)
python scripts/send_test_inquiry.py --origin https://crownnewmaterial.com

# Target a different backend URL
python scripts/send_test_inquiry.py --url http://staging.example.com

Environment / .env
------------------
PORT    Used for the default --url when set (default: 3000).
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


def _build_payload(args: argparse.Namespace) -> dict:
    payload = {
        "name": args.name,
        "email": args.email,
        "message": args.message,
    }
    if args.phone:
        payload["phone"] = args.phone
    if args.honeypot:
        payload["honeypot"] = args.honeypot
    return payload


def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        print(f"\n[FAIL] HTTP {status}")
        print(response.text)
        return
    symbol = "OK" if status == 200 and body.get("success") else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    print(json.dumps(body, indent=2, ensure_ascii=False))


def main() -> int:
    # scripts/ lives one level below the project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    default_url = f"http://localhost:{os.getenv('PORT', '3000')}"

    parser = argparse.ArgumentParser(
        prog="send_test_inquiry.py",
        description="Send a test contact-form inquiry to the backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_inquiry.py
              python scripts/send_test_inquiry.py --honeypot bot
              python scripts/send_test_inquiry.py --email not-an-email
        """),
    )
    parser.add_argument("--url", default=default_url, help=f"Backend base URL (default: {default_url})")
    parser.add_argument("--name", default="Zhang Wei")
    parser.add_argument("--email", default="zhang@example.com")
    parser.add_argument("--phone", default=None)
    parser.add_argument("--message", default="Interested in domain X")
    parser.add_argument("--honeypot", default=None, help="Value for the hidden spam-trap field")
    parser.add_argument("--origin", default=None, help="Origin header to send")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload without sending it.")

    args = parser.parse_args()

    payload = _build_payload(args)
    endpoint = f"{args.url.rstrip('/')}/send-email"

    print(f"Endpoint : {endpoint}")
    print(f"Origin   : {args.origin or '(none)'}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    headers = {"Origin": args.origin} if args.origin else {}
    try:
        response = httpx.post(endpoint, json=payload, headers=headers, timeout=60.0)
    except httpx.HTTPError as exc:
        print(f"ERROR: request failed: {exc}", file=sys.stderr)
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
