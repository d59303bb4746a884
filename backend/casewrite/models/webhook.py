"""
Webhook intake models.

IncomingWebhookRequest is what the HTTP layer hands to the core; the core
answers with a WebhookOutcome. NormalizedDocumentEvent is the source-agnostic
record passed on to the document pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    EMAIL = "email"
    SCANNER = "scanner"
    EXTERNAL = "external"


def parse_source_type(raw: str) -> Optional[SourceType]:
    """
    Exact, case-sensitive match of a path segment against the known sources.

    Returns None for anything unrecognized ("fax", "Email", "").
    """
    for source_type in SourceType:
        if source_type.value == raw:
            return source_type
    return None


@dataclass(frozen=True)
class IncomingWebhookRequest:
    """A webhook exactly as received: raw path segment, raw body bytes, signature header."""
    source_type: str
    raw_body: bytes
    signature: Optional[str] = None


class NormalizedDocumentEvent(BaseModel):
    """
    Source-agnostic document event.

    ``source`` is descriptive (for external systems it is whatever the caller
    declared); ``route`` decides which processing branch consumes the event.
    Serialized with camelCase keys (documentUrl, documentType).
    """

    model_config = ConfigDict(populate_by_name=True)

    source: str
    route: SourceType
    document_url: Optional[str] = Field(default=None, alias="documentUrl")
    document_type: Optional[str] = Field(default=None, alias="documentType")
    metadata: Dict[str, Any] = {}


class WebhookErrorKind(str, Enum):
    INVALID_SIGNATURE = "invalid_signature"
    UNSUPPORTED_SOURCE_TYPE = "unsupported_source_type"
    MALFORMED_BODY = "malformed_body"
    DOWNSTREAM_FAILURE = "downstream_failure"
    INTERNAL_ERROR = "internal_error"


@dataclass
class WebhookOutcome:
    """Result of handling one webhook: either a pipeline result or an error kind."""
    result: Optional[Dict[str, Any]] = None
    event: Optional[NormalizedDocumentEvent] = None
    error: Optional[WebhookErrorKind] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: WebhookErrorKind, message: str) -> "WebhookOutcome":
        return cls(error=error, message=message)


class ErrorBody(BaseModel):
    message: str
    status: int


class ErrorResponse(BaseModel):
    """Failure body shared by every endpoint: {"error": {"message", "status"}}."""
    error: ErrorBody

    @classmethod
    def build(cls, message: str, status: int) -> dict:
        return cls(error=ErrorBody(message=message, status=status)).model_dump()
