"""
Document pipeline for normalized webhook events.

Fetches the referenced document (when the event carries a URL), records it in
the document store and picks the processing branch for its route. Parsing and
OCR are not performed here; the branch is recorded as pending so a later stage
can pick it up.

The store is process-local and in-memory. Redelivered webhooks create new
records; deduplication (e.g. on emailId) is not done here.
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
from pydantic import BaseModel

from casewrite.config import DEFAULT_DOCUMENT_FETCH_TIMEOUT
from casewrite.models.webhook import NormalizedDocumentEvent, SourceType

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TYPE = "application/pdf"

# Processing branch per route
_BRANCHES = {
    SourceType.EMAIL: "parse",
    SourceType.SCANNER: "ocr",
    SourceType.EXTERNAL: "parse",
}


class DocumentPipelineError(Exception):
    """Raised when a normalized event cannot be fetched or stored."""


class StoredDocument(BaseModel):
    """A document record as kept by the store."""
    id: str
    name: str
    storage_key: str
    type: str
    size: int
    source: str
    metadata: Dict[str, Any] = {}
    created_at: str


class InMemoryDocumentStore:
    """Dict-backed document store. Contents live as long as the process."""

    def __init__(self) -> None:
        self._documents: Dict[str, StoredDocument] = {}
        self._contents: Dict[str, bytes] = {}

    def save(
        self,
        name: str,
        content_type: str,
        content: Optional[bytes],
        source: str,
        metadata: Optional[dict] = None,
    ) -> StoredDocument:
        """
        Store a document and return its record.

        The storage key is {document_id}-{sanitized_name}; spaces and special
        characters in the name are replaced with underscores.
        """
        document_id = str(uuid4())
        sanitized_name = re.sub(r'[^\w\-.]', '_', name)
        record = StoredDocument(
            id=document_id,
            name=name,
            storage_key=f"{document_id}-{sanitized_name}",
            type=content_type,
            size=len(content) if content else 0,
            source=source,
            metadata={**(metadata or {}), "originalName": name},
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self._documents[document_id] = record
        if content is not None:
            self._contents[document_id] = content
        return record

    def get(self, document_id: str) -> Optional[StoredDocument]:
        return self._documents.get(document_id)

    def get_content(self, document_id: str) -> Optional[bytes]:
        return self._contents.get(document_id)

    def list(self) -> List[StoredDocument]:
        return list(self._documents.values())


class DocumentPipeline:
    """
    Consumes NormalizedDocumentEvents.

    Args:
        store: where fetched documents are recorded.
        fetch_timeout: seconds allowed for downloading a document.
        transport: optional httpx transport (tests pass an httpx.MockTransport).
    """

    def __init__(
        self,
        store: Optional[InMemoryDocumentStore] = None,
        fetch_timeout: float = DEFAULT_DOCUMENT_FETCH_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store if store is not None else InMemoryDocumentStore()
        self.fetch_timeout = fetch_timeout
        self._transport = transport

    async def _fetch(self, url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=self.fetch_timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def process_event(self, event: NormalizedDocumentEvent) -> dict:
        """
        Fetch, store and route one event.

        Returns:
            {"success": True, "documentId", "source",
             "processing": {"branch", "status"}, "timestamp"}

        Raises:
            DocumentPipelineError: if the download or the store fails.
        """
        try:
            content: Optional[bytes] = None
            if event.document_url:
                content = await self._fetch(event.document_url)

            filename = event.metadata.get("filename")
            name = str(filename) if filename else (
                f"{event.source}-document-{int(time.time() * 1000)}.pdf"
            )
            record = self.store.save(
                name=name,
                content_type=event.document_type or DEFAULT_DOCUMENT_TYPE,
                content=content,
                source=event.source,
                metadata=event.metadata,
            )
        except Exception as e:
            raise DocumentPipelineError(f"Failed to process webhook document: {e}") from e

        branch = _BRANCHES[event.route]
        logger.info(
            f"Stored document {record.id} from {event.source!r} "
            f"({record.size} bytes), queued for {branch}"
        )

        return {
            "success": True,
            "documentId": record.id,
            "source": event.source,
            "processing": {"branch": branch, "status": "pending"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
