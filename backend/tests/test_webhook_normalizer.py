"""
Unit tests for the webhook normalizer.

Each source body is mapped to a NormalizedDocumentEvent; unknown source types
raise UnsupportedSourceType instead of falling through to a default.
"""

import pytest

from casewrite.models.webhook import NormalizedDocumentEvent, SourceType, parse_source_type
from casewrite.services.webhook_normalizer import (
    UnsupportedSourceType,
    normalize_email,
    normalize_event,
    normalize_external,
    normalize_scanner,
    normalize_webhook,
)


# ---------------------------------------------------------------------------
# Payload builder helpers
# ---------------------------------------------------------------------------

def _make_email_body(attachments: list | None = None) -> dict:
    if attachments is None:
        attachments = [
            {"url": "http://x/f.pdf", "filename": "f.pdf", "contentType": "application/pdf"}
        ]
    return {
        "sender": "a@b.com",
        "subject": "Re: case",
        "receivedAt": "2025-01-01T00:00:00Z",
        "emailId": "E1",
        "attachments": attachments,
    }


def _make_scanner_body(**overrides) -> dict:
    body = {
        "documentUrl": "http://x/s.png",
        "filename": "s.png",
        "scannedBy": "u1",
        "scannedAt": "t",
        "deviceId": "d1",
    }
    body.update(overrides)
    return body


def _make_external_body(**overrides) -> dict:
    body = {
        "source": "docusign",
        "documentUrl": "http://x/e.docx",
        "documentType": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "filename": "e.docx",
        "externalId": "X-9",
        "externalSystem": "hr-case-management",
        "createdAt": "2025-02-02T10:00:00Z",
        "createdBy": "jdoe",
        "additionalData": {"caseId": "C-1", "tags": ["hr", "urgent"]},
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# parse_source_type
# ---------------------------------------------------------------------------

class TestParseSourceType:

    @pytest.mark.parametrize("raw,expected", [
        ("email", SourceType.EMAIL),
        ("scanner", SourceType.SCANNER),
        ("external", SourceType.EXTERNAL),
    ])
    def test_known_sources(self, raw, expected):
        assert parse_source_type(raw) is expected

    @pytest.mark.parametrize("raw", ["fax", "Email", "EMAIL", " email", "", "status"])
    def test_anything_else_is_unrecognized(self, raw):
        assert parse_source_type(raw) is None


# ---------------------------------------------------------------------------
# normalize_email
# ---------------------------------------------------------------------------

class TestNormalizeEmail:

    def test_maps_first_attachment_and_headers(self):
        event = normalize_email(_make_email_body())

        assert event.source == "email"
        assert event.route is SourceType.EMAIL
        assert event.document_url == "http://x/f.pdf"
        assert event.document_type == "application/pdf"
        assert event.metadata == {
            "filename": "f.pdf",
            "sender": "a@b.com",
            "subject": "Re: case",
            "receivedAt": "2025-01-01T00:00:00Z",
            "emailId": "E1",
        }

    def test_only_first_attachment_is_used(self):
        event = normalize_email(_make_email_body(attachments=[
            {"url": "http://x/1.pdf", "filename": "1.pdf", "contentType": "application/pdf"},
            {"url": "http://x/2.png", "filename": "2.png", "contentType": "image/png"},
        ]))
        assert event.document_url == "http://x/1.pdf"
        assert event.metadata["filename"] == "1.pdf"

    def test_empty_attachments_still_normalizes(self):
        event = normalize_email(_make_email_body(attachments=[]))
        assert event.document_url is None
        assert event.document_type is None
        assert event.metadata["filename"] is None
        assert event.metadata["emailId"] == "E1"

    def test_missing_attachments_key_still_normalizes(self):
        body = _make_email_body()
        del body["attachments"]
        event = normalize_email(body)
        assert event.document_url is None
        assert event.document_type is None

    def test_non_dict_attachment_is_ignored(self):
        event = normalize_email(_make_email_body(attachments=["not-an-object"]))
        assert event.document_url is None

    def test_missing_header_fields_become_none(self):
        event = normalize_email({"attachments": []})
        assert event.metadata == {
            "filename": None,
            "sender": None,
            "subject": None,
            "receivedAt": None,
            "emailId": None,
        }


# ---------------------------------------------------------------------------
# normalize_scanner
# ---------------------------------------------------------------------------

class TestNormalizeScanner:

    def test_defaults_document_type_to_pdf(self):
        event = normalize_scanner(_make_scanner_body())
        assert event.source == "scanner"
        assert event.route is SourceType.SCANNER
        assert event.document_url == "http://x/s.png"
        assert event.document_type == "application/pdf"

    def test_keeps_declared_document_type(self):
        event = normalize_scanner(_make_scanner_body(documentType="image/png"))
        assert event.document_type == "image/png"

    def test_metadata_fields(self):
        event = normalize_scanner(_make_scanner_body(resolution="600dpi"))
        assert event.metadata == {
            "filename": "s.png",
            "scannedBy": "u1",
            "scannedAt": "t",
            "deviceId": "d1",
            "resolution": "600dpi",
        }

    def test_resolution_is_optional(self):
        event = normalize_scanner(_make_scanner_body())
        assert event.metadata["resolution"] is None


# ---------------------------------------------------------------------------
# normalize_external
# ---------------------------------------------------------------------------

class TestNormalizeExternal:

    def test_keeps_declared_source_and_routes_to_external(self):
        event = normalize_external(_make_external_body())
        assert event.source == "docusign"
        assert event.route is SourceType.EXTERNAL

    def test_source_defaults_to_external(self):
        body = _make_external_body()
        del body["source"]
        assert normalize_external(body).source == "external"

    def test_document_type_has_no_default(self):
        body = _make_external_body()
        del body["documentType"]
        assert normalize_external(body).document_type is None

    def test_additional_data_passes_through_untouched(self):
        body = _make_external_body()
        event = normalize_external(body)
        assert event.metadata["additionalData"] == {"caseId": "C-1", "tags": ["hr", "urgent"]}
        assert event.metadata["externalId"] == "X-9"
        assert event.metadata["externalSystem"] == "hr-case-management"
        assert event.metadata["createdAt"] == "2025-02-02T10:00:00Z"
        assert event.metadata["createdBy"] == "jdoe"
        assert event.metadata["filename"] == "e.docx"


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestNormalizeWebhook:

    @pytest.mark.parametrize("source_type", list(SourceType))
    def test_every_source_type_has_a_normalizer(self, source_type):
        event = normalize_event(source_type, {})
        assert isinstance(event, NormalizedDocumentEvent)
        assert event.route is source_type

    def test_dispatches_by_exact_name(self):
        assert normalize_webhook("scanner", _make_scanner_body()).route is SourceType.SCANNER

    @pytest.mark.parametrize("raw", ["fax", "Scanner", ""])
    def test_unknown_source_raises(self, raw):
        with pytest.raises(UnsupportedSourceType) as exc_info:
            normalize_webhook(raw, _make_scanner_body())
        assert exc_info.value.source_type == raw
        assert "Unsupported webhook type" in str(exc_info.value)

    def test_event_serializes_with_camel_case_keys(self):
        data = normalize_email(_make_email_body()).model_dump(by_alias=True)
        assert data["documentUrl"] == "http://x/f.pdf"
        assert data["documentType"] == "application/pdf"
