"""
HMAC-SHA256 webhook signature verification.

Senders sign the exact bytes of the request body with the shared secret for
their source and put the lowercase hex digest in the ``x-webhook-signature``
header. The digest is always computed over the raw body as received; hashing
a re-serialized JSON object would change key order and whitespace and yield a
different digest.
"""

import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "x-webhook-signature"

# Length of a hex-encoded SHA-256 digest
_DIGEST_HEX_LENGTH = 64


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of raw_body keyed with secret."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(
    raw_body: bytes,
    declared_signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Check a declared signature against the raw request body.

    Rules:
      - No secret configured for the source: verification is skipped and the
        request passes. Sources that need enforcement must configure a secret.
      - Secret configured but no signature declared: fails.
      - Otherwise the expected digest is compared with hmac.compare_digest so
        the comparison time does not depend on where the digests differ.
        A declared value of the wrong length is rejected up front.
    """
    if not secret:
        return True

    if not declared_signature:
        return False

    expected = compute_signature(raw_body, secret)
    if len(declared_signature) != _DIGEST_HEX_LENGTH:
        return False

    return hmac.compare_digest(
        expected.encode("ascii"),
        declared_signature.encode("utf-8"),
    )
