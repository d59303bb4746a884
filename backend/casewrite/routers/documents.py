"""
Read-only access to documents recorded by the webhook pipeline.
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from casewrite.services.document_pipeline import StoredDocument

router = APIRouter()


def get_document_store(request: Request):
    return request.app.state.pipeline.store


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    store=Depends(get_document_store),
) -> StoredDocument:
    """Return a stored document record. 404 when the ID is unknown."""
    document = store.get(document_id)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return document
