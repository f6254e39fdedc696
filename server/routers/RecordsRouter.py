from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.responses import RecordSummary, RecordsResponse

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=RecordsResponse, response_model_by_alias=True)
async def list_records(request: Request, label: str | None = None, _: None = Depends(verify_api_key)) -> RecordsResponse:
    """List the stored records, optionally only those carrying a label."""
    record_store = request.app.state.record_store
    records = [
        RecordSummary.from_record(path.name, record)
        for path, record in record_store.list_with_paths()
        if label is None or label in record.labels
    ]
    return RecordsResponse(records=records, total=len(records))
