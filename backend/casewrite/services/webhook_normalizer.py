"""
Webhook normalizer service.

Converts source-specific webhook bodies into a single source-agnostic
NormalizedDocumentEvent.

Supported sources:
  - email     attachment-bearing email notifications
  - scanner   network scanners posting a finished scan
  - external  any third-party system pushing a document

Adding a new source:
  1. Add a member to SourceType.
  2. Write a normalize_<source>(body: dict) -> NormalizedDocumentEvent function.
  3. Register it in _NORMALIZERS (the import-time check below fails otherwise).

Missing optional fields become None. Nothing here rejects a body for missing
data; an email without attachments still normalizes, with no documentUrl.
"""

from typing import Any, Callable

from casewrite.models.webhook import (
    NormalizedDocumentEvent,
    SourceType,
    parse_source_type,
)

DEFAULT_SCANNER_DOCUMENT_TYPE = "application/pdf"


class UnsupportedSourceType(ValueError):
    """Raised when a webhook names a source this service does not know."""

    def __init__(self, source_type: str):
        self.source_type = source_type
        super().__init__(f"Unsupported webhook type: {source_type}")


# ---------------------------------------------------------------------------
# Email normalizer
# ---------------------------------------------------------------------------

def _first_attachment(body: dict) -> dict:
    attachments = body.get("attachments") or []
    if not isinstance(attachments, list) or not attachments:
        return {}
    first = attachments[0]
    return first if isinstance(first, dict) else {}


def normalize_email(body: dict) -> NormalizedDocumentEvent:
    """
    Convert an email webhook body to a NormalizedDocumentEvent.

    Only the first attachment is taken:
      attachments[0].{url, filename, contentType}
    plus the top-level sender, subject, receivedAt and emailId.
    """
    attachment = _first_attachment(body)

    return NormalizedDocumentEvent(
        source=SourceType.EMAIL.value,
        route=SourceType.EMAIL,
        document_url=attachment.get("url"),
        document_type=attachment.get("contentType"),
        metadata={
            "filename": attachment.get("filename"),
            "sender": body.get("sender"),
            "subject": body.get("subject"),
            "receivedAt": body.get("receivedAt"),
            "emailId": body.get("emailId"),
        },
    )


# ---------------------------------------------------------------------------
# Scanner normalizer
# ---------------------------------------------------------------------------

def normalize_scanner(body: dict) -> NormalizedDocumentEvent:
    """Scanner bodies are flat; documentType defaults to application/pdf."""
    return NormalizedDocumentEvent(
        source=SourceType.SCANNER.value,
        route=SourceType.SCANNER,
        document_url=body.get("documentUrl"),
        document_type=body.get("documentType") or DEFAULT_SCANNER_DOCUMENT_TYPE,
        metadata={
            "filename": body.get("filename"),
            "scannedBy": body.get("scannedBy"),
            "scannedAt": body.get("scannedAt"),
            "deviceId": body.get("deviceId"),
            "resolution": body.get("resolution"),
        },
    )


# ---------------------------------------------------------------------------
# External system normalizer
# ---------------------------------------------------------------------------

def normalize_external(body: dict) -> NormalizedDocumentEvent:
    """
    External systems may name themselves in ``source``; that value is kept as
    the event source while routing stays on the external branch.

    additionalData is passed through untouched.
    """
    return NormalizedDocumentEvent(
        source=body.get("source") or SourceType.EXTERNAL.value,
        route=SourceType.EXTERNAL,
        document_url=body.get("documentUrl"),
        document_type=body.get("documentType"),
        metadata={
            "filename": body.get("filename"),
            "externalId": body.get("externalId"),
            "externalSystem": body.get("externalSystem"),
            "createdAt": body.get("createdAt"),
            "createdBy": body.get("createdBy"),
            "additionalData": body.get("additionalData"),
        },
    )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------

_NORMALIZERS: dict[SourceType, Callable[[dict], NormalizedDocumentEvent]] = {
    SourceType.EMAIL: normalize_email,
    SourceType.SCANNER: normalize_scanner,
    SourceType.EXTERNAL: normalize_external,
}

_missing = set(SourceType) - set(_NORMALIZERS)
if _missing:
    raise RuntimeError(f"No webhook normalizer registered for: {sorted(s.value for s in _missing)}")


def normalize_event(source_type: SourceType, body: dict[str, Any]) -> NormalizedDocumentEvent:
    """Normalize a parsed body for an already-recognized source."""
    return _NORMALIZERS[source_type](body)


def normalize_webhook(source_type: str, body: dict[str, Any]) -> NormalizedDocumentEvent:
    """
    Route a raw source-type string to the correct normalizer.

    Matching is exact; there is no fallback branch.

    Raises:
        UnsupportedSourceType: for anything outside SourceType.
    """
    resolved = parse_source_type(source_type)
    if resolved is None:
        raise UnsupportedSourceType(source_type)
    return normalize_event(resolved, body)
