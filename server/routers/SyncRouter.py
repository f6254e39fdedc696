from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SyncBatchRequest, SyncDocumentRequest
from shared.models.batch import BatchCriteria
from shared.models.results import BatchSummary, SyncResult

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/document", response_model=SyncResult)
async def sync_document(
    request: Request,
    body: SyncDocumentRequest,
    _: None = Depends(verify_api_key),
) -> SyncResult:
    """Sync one document into the record store and return where it went.

    Args:
        request (Request): FastAPI request (provides app.state.sync_service).
        body (SyncDocumentRequest): Document id or URL.
        _ (None): Auth dependency result (unused).
    """
    return await request.app.state.sync_service.do_sync_document(body.document_id)


@router.post("/batch", response_model=BatchSummary)
async def sync_batch(
    request: Request,
    body: SyncBatchRequest,
    _: None = Depends(verify_api_key),
) -> BatchSummary:
    """Run a batch sync over the documents selected by label, filter and query."""
    criteria = BatchCriteria(label=body.label, filter=body.filter, query=body.query, all_pages=body.all_pages)
    return await request.app.state.batch_service.run_sync(
        criteria,
        generate_pdf=body.generate_pdf,
        upload=body.upload,
        template=body.template,
    )
