"""
Webhook intake router.

Receives document events pushed by email gateways, scanners and external
systems. The raw request body is captured before any parsing so the HMAC
signature is checked against the exact bytes that were sent.

Endpoints:
  POST /{source_type}   - webhook receiver (auth: x-webhook-signature)
  GET  /status          - service status and which sources require signing
  GET  /docs            - payload documentation per source
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from casewrite.config import Settings
from casewrite.models.webhook import (
    ErrorResponse,
    IncomingWebhookRequest,
    SourceType,
    WebhookErrorKind,
)
from casewrite.services.webhook_handler import EventPipeline, handle_webhook
from casewrite.services.webhook_signature import SIGNATURE_HEADER

router = APIRouter()

_STATUS_BY_ERROR = {
    WebhookErrorKind.INVALID_SIGNATURE: 401,
    WebhookErrorKind.UNSUPPORTED_SOURCE_TYPE: 400,
    WebhookErrorKind.MALFORMED_BODY: 400,
    WebhookErrorKind.DOWNSTREAM_FAILURE: 500,
    WebhookErrorKind.INTERNAL_ERROR: 500,
}

_SECURITY_NOTE = "HMAC SHA-256 signature in x-webhook-signature header"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pipeline(request: Request) -> EventPipeline:
    return request.app.state.pipeline


async def _read_raw_body(request: Request, limit: int) -> bytes:
    """
    Buffer the request body, refusing anything larger than ``limit`` bytes.

    A declared Content-Length over the limit is rejected before reading.
    Raises 413 otherwise as soon as the streamed size passes the limit.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail="Webhook body too large")

    chunks = bytearray()
    async for chunk in request.stream():
        chunks.extend(chunk)
        if len(chunks) > limit:
            raise HTTPException(status_code=413, detail="Webhook body too large")
    return bytes(chunks)


# ---------------------------------------------------------------------------
# Read-only endpoints
# ---------------------------------------------------------------------------

@router.get("/status")
async def webhook_status(settings: Settings = Depends(get_settings)) -> dict:
    """Report the webhook service as running and list supported sources."""
    return {
        "status": "operational",
        "message": "Webhook service is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "supportedWebhooks": [s.value for s in SourceType],
        "signatureRequired": {
            s.value: settings.webhook_secrets.is_enforced(s.value) for s in SourceType
        },
    }


@router.get("/docs")
async def webhook_docs() -> dict:
    """Describe the expected payload of each webhook source."""
    return {
        "documentation": {
            "email": {
                "endpoint": "/api/webhooks/email",
                "method": "POST",
                "contentType": "application/json",
                "description": "Webhook for processing email attachments",
                "requiredFields": ["sender", "subject", "receivedAt", "emailId", "attachments"],
                "attachmentsFormat": [
                    {
                        "url": "https://example.com/attachment.pdf",
                        "filename": "attachment.pdf",
                        "contentType": "application/pdf",
                    }
                ],
                "security": _SECURITY_NOTE,
            },
            "scanner": {
                "endpoint": "/api/webhooks/scanner",
                "method": "POST",
                "contentType": "application/json",
                "description": "Webhook for processing scanned documents",
                "requiredFields": ["documentUrl", "filename", "scannedBy", "scannedAt", "deviceId"],
                "security": _SECURITY_NOTE,
            },
            "external": {
                "endpoint": "/api/webhooks/external",
                "method": "POST",
                "contentType": "application/json",
                "description": "Webhook for processing documents from external systems",
                "requiredFields": ["documentUrl", "source", "externalId", "externalSystem"],
                "security": _SECURITY_NOTE,
            },
        },
        "securityDetails": {
            "signatureGeneration": "HMAC SHA-256 of the raw request body using the webhook secret",
            "headerName": SIGNATURE_HEADER,
            "example": f"{SIGNATURE_HEADER}: "
                       "5c52d2f26a9aacf73d0bbb7e1b34049477a0b5f1f1bc5b1b9ddc994ce992d8d8",
        },
    }


# ---------------------------------------------------------------------------
# Webhook receiver
# ---------------------------------------------------------------------------

@router.post("/{source_type}")
async def receive_webhook(
    source_type: str,
    request: Request,
    x_webhook_signature: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    pipeline: EventPipeline = Depends(get_pipeline),
):
    """
    Verify, normalize and process one webhook.

    Returns the document pipeline's result on success. Failures use the
    {"error": {"message", "status"}} body:
      401  signature missing or wrong for a source with a configured secret
      400  unknown source type or malformed body
      413  body larger than MAX_WEBHOOK_BODY_BYTES
      500  document pipeline failure
    """
    raw_body = await _read_raw_body(request, settings.max_webhook_body_bytes)

    outcome = await handle_webhook(
        IncomingWebhookRequest(
            source_type=source_type,
            raw_body=raw_body,
            signature=x_webhook_signature,
        ),
        settings.webhook_secrets,
        pipeline,
    )

    if not outcome.ok:
        status = _STATUS_BY_ERROR[outcome.error]
        return JSONResponse(
            status_code=status,
            content=ErrorResponse.build(outcome.message or outcome.error.value, status),
        )

    return outcome.result
