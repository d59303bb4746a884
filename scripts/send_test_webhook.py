#!/usr/bin/env python3
"""
Dev helper: send a signed test webhook to the local CaseWrite backend.

Builds a sample payload for the chosen source (or reads one from a JSON
file), signs the exact bytes that will be sent and POST-s them to
/api/webhooks/<source>.

Usage
-----
# Email webhook with the sample payload, targeting localhost:8000
python scripts/send_test_webhook.py email

# Scanner webhook pointing at a real document URL
python scripts/send_test_webhook.py scanner --document-url https://example.com/scan.pdf

# Send a payload from a file, byte for byte
python scripts/send_test_webhook.py external --payload payload.json

# Send a deliberately wrong signature
python scripts/send_test_webhook.py email --tamper

Environment / .env
------------------
WEBHOOK_SECRET_EMAIL, WEBHOOK_SECRET_SCANNER, WEBHOOK_SECRET_EXTERNAL
    Secret used to sign for the matching source. Without one the request is
    sent unsigned.
"""

import argparse
import json
import os
import sys
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import httpx
from dotenv import load_dotenv

from casewrite.services.webhook_signature import SIGNATURE_HEADER, compute_signature

_SAMPLE_DOCUMENT_URL = "https://example.com/documents/sample.pdf"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def _build_email_payload(document_url: str) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    return {
        "sender": "client@example.com",
        "subject": "Signed engagement letter",
        "receivedAt": now,
        "emailId": f"test-{int(datetime.now(timezone.utc).timestamp())}",
        "attachments": [
            {
                "url": document_url,
                "filename": Path(document_url).name or "attachment.pdf",
                "contentType": "application/pdf",
            }
        ],
    }


def _build_scanner_payload(document_url: str) -> dict:
    return {
        "documentUrl": document_url,
        "filename": Path(document_url).name or "scan.pdf",
        "scannedBy": "front-desk",
        "scannedAt": datetime.now(timezone.utc).isoformat(),
        "deviceId": "scanner-01",
        "resolution": "300dpi",
    }


def _build_external_payload(document_url: str) -> dict:
    return {
        "source": "case-management",
        "documentUrl": document_url,
        "documentType": "application/pdf",
        "filename": Path(document_url).name or "document.pdf",
        "externalId": "EXT-1001",
        "externalSystem": "hr-case-management",
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "createdBy": "integration-user",
        "additionalData": {"caseId": "CASE-42"},
    }


_PAYLOAD_BUILDERS = {
    "email": _build_email_payload,
    "scanner": _build_scanner_payload,
    "external": _build_external_payload,
}


def _print_response(response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_webhook.py",
        description=textwrap.dedent("""\
            Send a signed test webhook to the CaseWrite backend.

            Reads WEBHOOK_SECRET_<SOURCE> from the environment or a .env file
            in the project root.
        """),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source", choices=list(_PAYLOAD_BUILDERS), help="Webhook source type")
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--document-url",
        default=_SAMPLE_DOCUMENT_URL,
        help=f"Document URL placed in the sample payload (default: {_SAMPLE_DOCUMENT_URL})",
    )
    parser.add_argument(
        "--payload",
        default=None,
        metavar="PATH",
        help="Send this file's bytes as the body instead of a sample payload.",
    )
    parser.add_argument(
        "--secret",
        default=None,
        metavar="SECRET",
        help="Override the signing secret. Defaults to WEBHOOK_SECRET_<SOURCE>.",
    )
    parser.add_argument(
        "--tamper",
        action="store_true",
        help="Flip the last hex digit of the signature.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the body and headers without sending.",
    )

    args = parser.parse_args()

    if args.payload:
        payload_path = Path(args.payload)
        if not payload_path.exists():
            print(f"ERROR: File not found: {payload_path}", file=sys.stderr)
            return 1
        body = payload_path.read_bytes()
    else:
        body = json.dumps(_PAYLOAD_BUILDERS[args.source](args.document_url), indent=2).encode()

    headers = {"Content-Type": "application/json"}
    secret = args.secret or os.getenv(f"WEBHOOK_SECRET_{args.source.upper()}")
    if secret:
        signature = compute_signature(body, secret)
        if args.tamper:
            signature = signature[:-1] + ("0" if signature[-1] != "0" else "1")
        headers[SIGNATURE_HEADER] = signature
    else:
        print("No secret configured for this source; sending unsigned.")

    endpoint = f"{args.url.rstrip('/')}/api/webhooks/{args.source}"
    print(f"Endpoint  : {endpoint}")
    print(f"Signature : {headers.get(SIGNATURE_HEADER, '(none)')}")

    if args.dry_run:
        print("\n[DRY RUN] Body:")
        print(body.decode("utf-8", errors="replace"))
        return 0

    try:
        response = httpx.post(endpoint, content=body, headers=headers, timeout=30)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  uvicorn casewrite.main:app --reload",
            file=sys.stderr,
        )
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
